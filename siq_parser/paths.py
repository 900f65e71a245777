"""
Path Normalizer / Candidate Index
=================================
Builds the two lookup tables used by media resolution:

    path index:      normalized full path  -> canonical entry path
    basename index:  normalized basename   -> canonical entry path

Keys cover the encoding, case, whitespace and substitution variants that
authoring tools produce, so lookups never rescan the archive.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from types import MappingProxyType
from typing import Iterable, Mapping, Optional
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_SEPARATOR_RE = re.compile(r"[/\\]")

# Characters left literal by percent re-encoding (JS encodeURIComponent
# minus parentheses, plus the path separator).
_ENCODE_SAFE = "/!~*'"


def normalize(s: Optional[str]) -> str:
    """trim -> lowercase -> NFC -> collapse internal whitespace."""
    if not s:
        return ""
    s = unicodedata.normalize("NFC", s.strip().lower())
    return _WHITESPACE_RE.sub(" ", s)


def basename(path: str) -> str:
    """Last component of a path split on either separator."""
    return _SEPARATOR_RE.split(path)[-1] or path


def percent_decode(s: str) -> str:
    return unquote(s)


def percent_encode(s: str) -> str:
    return quote(s, safe=_ENCODE_SAFE)


def plus_space_variants(s: str) -> tuple[str, str]:
    """The '+'->' ' and ' '->'+' substitutions of a name."""
    return s.replace("+", " "), s.replace(" ", "+")


class CandidateIndex:
    """
    Read-only index of archive entries, built once per parse.
    """

    def __init__(self, paths: Mapping[str, str], basenames: Mapping[str, str]):
        self._paths = MappingProxyType(dict(paths))
        self._basenames = MappingProxyType(dict(basenames))

    @classmethod
    def build(cls, entries: Iterable[str]) -> "CandidateIndex":
        """
        Index every file entry under its path and basename variants.

        Args:
            entries: Canonical file entry paths (directories excluded).
        """
        paths: dict[str, str] = {}
        basenames: dict[str, str] = {}

        for entry in entries:
            norm_path = normalize(entry)
            paths[norm_path] = entry

            decoded = normalize(percent_decode(entry))
            if decoded != norm_path:
                paths[decoded] = entry

            encoded = normalize(percent_encode(entry))
            if encoded != norm_path:
                paths[encoded] = entry

            norm_base = normalize(basename(entry))
            basenames[norm_base] = entry
            for variant in plus_space_variants(norm_base):
                basenames[variant] = entry

        logger.debug(
            f"Candidate index built: {len(paths)} path keys, "
            f"{len(basenames)} basename keys"
        )
        return cls(paths, basenames)

    def lookup_path(self, key: str) -> Optional[str]:
        """Canonical path for an already-normalized full path."""
        return self._paths.get(key)

    def lookup_basename(self, key: str) -> Optional[str]:
        """Canonical path for an already-normalized basename."""
        return self._basenames.get(key)

    def basename_keys(self) -> list[str]:
        """Basename keys in insertion order."""
        return list(self._basenames)

    def __len__(self) -> int:
        return len(self._paths)
