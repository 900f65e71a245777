"""
Media Resolver
==============
Maps a media reference from the XML to an archive entry.

Resolution is an ordered chain of strategies over the pre-built
CandidateIndex; the first strategy that finds an entry wins:

    1. exact   - every candidate spelling x every folder prefix -> path index
    2. base    - every candidate's basename -> basename index
    3. loose   - substring containment over indexed basenames (long names only)

A reference that survives the whole chain unmatched is a miss: it is
logged and the caller simply omits the asset.
"""

from __future__ import annotations

import html
import logging
import posixpath
import unicodedata
from typing import Callable, Optional

from .archive import Archive
from .models import MediaBlob, MediaKind
from .paths import (
    CandidateIndex,
    basename,
    normalize,
    percent_decode,
    percent_encode,
    plus_space_variants,
)

logger = logging.getLogger(__name__)

GENERIC_MIME = "application/octet-stream"

EXTENSION_MIME = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
}

DEFAULT_LOOSE_MATCH_MIN_LENGTH = 5


def mime_from_extension(filename: str) -> Optional[str]:
    ext = posixpath.splitext(filename)[1].lstrip(".").lower()
    return EXTENSION_MIME.get(ext)


def guess_mime_type(filename: str, declared: Optional[str] = None) -> str:
    """
    Declared type if meaningful, else by extension, else generic binary.
    """
    if declared and declared != GENERIC_MIME:
        return declared
    return mime_from_extension(filename) or declared or GENERIC_MIME


def folder_prefixes(kind: MediaKind) -> list[str]:
    """Folder prefixes probed for a kind, in order."""
    prefixes = ["", f"{kind.value}/", "Images/", "Audio/", "Video/", "Texts/",
                f"{kind.value.lower()}/"]
    return list(dict.fromkeys(prefixes))


def build_candidates(reference: str) -> list[str]:
    """
    Spelling variants of a reference, in probe order, de-duplicated.
    """
    raw = reference
    stripped = raw[1:] if raw.startswith("@") else raw
    clean = stripped.strip()
    base = basename(clean)

    candidates = [
        clean,
        base,
        stripped,
        raw,
        unicodedata.normalize("NFC", clean),
        unicodedata.normalize("NFD", clean),
        percent_decode(clean),
        percent_decode(base),
        percent_encode(clean),
        *plus_space_variants(clean),
        html.unescape(clean),
    ]
    return [c for c in dict.fromkeys(candidates) if c]


class MediaResolver:
    """
    Resolves media references against one archive.

    Holds no mutable state beyond the archive's own read lock, so one
    instance may serve every worker of a parse.
    """

    def __init__(
        self,
        archive: Archive,
        index: CandidateIndex,
        loose_match_min_length: int = DEFAULT_LOOSE_MATCH_MIN_LENGTH,
    ):
        self.archive = archive
        self.index = index
        self.loose_match_min_length = loose_match_min_length
        self._strategies: list[Callable[[list[str], MediaKind, str], Optional[str]]] = [
            self._match_exact,
            self._match_basename,
            self._match_loose,
        ]

    def resolve(self, reference: str, kind: MediaKind) -> Optional[MediaBlob]:
        """
        Find the archive entry a reference points to.

        Never raises; returns None on a miss.
        """
        if not reference or not reference.strip():
            return None

        try:
            candidates = build_candidates(reference)
            target = basename(candidates[0]) if candidates else ""

            for strategy in self._strategies:
                path = strategy(candidates, kind, target)
                if path is not None:
                    return self._load(path, target)
        except Exception as e:
            logger.error(f"Error resolving {reference!r} ({kind.value}): {e}")
            return None

        logger.warning(f"Could not find media {reference!r} (kind: {kind.value})")
        return None

    # ─── Strategies ───────────────────────────────────────────────────────

    def _match_exact(
        self, candidates: list[str], kind: MediaKind, target: str
    ) -> Optional[str]:
        for prefix in folder_prefixes(kind):
            for cand in candidates:
                path = self.index.lookup_path(normalize(prefix + cand))
                if path is not None:
                    return path
        return None

    def _match_basename(
        self, candidates: list[str], kind: MediaKind, target: str
    ) -> Optional[str]:
        for cand in candidates:
            path = self.index.lookup_basename(normalize(basename(cand)))
            if path is not None:
                logger.debug(f"Basename match for {cand!r}: {path}")
                return path
        return None

    def _match_loose(
        self, candidates: list[str], kind: MediaKind, target: str
    ) -> Optional[str]:
        wanted = normalize(target)
        if len(wanted) <= self.loose_match_min_length:
            return None
        for key in self.index.basename_keys():
            if key and (wanted in key or key in wanted):
                path = self.index.lookup_basename(key)
                logger.info(f"Loose match for {target!r}: {path}")
                return path
        return None

    # ─── Loading ──────────────────────────────────────────────────────────

    def _load(self, path: str, name: str) -> MediaBlob:
        data = self.archive.read(path)
        return MediaBlob(
            name=name or basename(path),
            path=path,
            mime_type=guess_mime_type(path, self.archive.declared_type(path)),
            data=data,
        )
