"""
Archive Reader
==============
Opens a package byte buffer as a zip container and exposes its entries.

The only failures are an archive that cannot be decompressed and one
without a root ``content.xml`` (matched case-insensitively).
"""

from __future__ import annotations

import io
import logging
import posixpath
import threading
import zipfile
import zlib
from typing import Optional

# SECURITY: defusedxml guards against entity expansion in untrusted packages
from defusedxml import ElementTree as DefusedET
from defusedxml.common import DefusedXmlException
from xml.etree.ElementTree import ParseError

from .exceptions import InvalidFormatError

logger = logging.getLogger(__name__)

ROOT_DOCUMENT = "content.xml"
CONTENT_TYPES_PART = "[Content_Types].xml"

# General purpose flag bit 11: entry name is UTF-8
_UTF8_FLAG = 0x800


def _decode_entry_name(info: zipfile.ZipInfo) -> str:
    """
    Recover UTF-8 names written without the UTF-8 flag.

    zipfile decodes such names as cp437; many authoring tools wrote
    UTF-8 bytes anyway.
    """
    name = info.filename
    if info.flag_bits & _UTF8_FLAG:
        return name
    try:
        return name.encode("cp437").decode("utf-8")
    except (UnicodeEncodeError, UnicodeDecodeError):
        return name


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


class Archive:
    """
    In-memory view of one package archive.

    Entries are keyed by their canonical path (the decoded zip entry
    name). Reads are serialized so worker threads can share an instance.
    """

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf
        self._lock = threading.Lock()
        self._infos: dict[str, zipfile.ZipInfo] = {}
        for info in zf.infolist():
            self._infos[_decode_entry_name(info)] = info

        self.root_document = self._find_root_document()
        if self.root_document is None:
            raise InvalidFormatError(
                f"Invalid package: {ROOT_DOCUMENT} not found"
            )

        self._default_types: dict[str, str] = {}
        self._override_types: dict[str, str] = {}
        self._load_content_types()

    @classmethod
    def open(cls, data: bytes) -> "Archive":
        """
        Open a byte buffer as a package archive.

        Raises:
            InvalidFormatError: If the buffer is not a readable zip or
                has no root content.xml.
        """
        try:
            zf = zipfile.ZipFile(io.BytesIO(data), "r")
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
            raise InvalidFormatError(f"Invalid package: not a zip archive ({e})") from e

        try:
            archive = cls(zf)
        except InvalidFormatError:
            zf.close()
            raise
        logger.debug(
            f"Opened archive with {len(archive._infos)} entries, "
            f"root document: {archive.root_document}"
        )
        return archive

    def close(self):
        self._zf.close()

    def __enter__(self) -> "Archive":
        return self

    def __exit__(self, *exc):
        self.close()

    # ─── Entry Access ─────────────────────────────────────────────────────

    def list_entries(self) -> list[str]:
        """All entry paths, directories included, in archive order."""
        return list(self._infos)

    def is_dir(self, path: str) -> bool:
        return self._infos[path].is_dir()

    def has_entry(self, path: str) -> bool:
        return path in self._infos

    def entry_size(self, path: str) -> int:
        return self._infos[path].file_size

    def read(self, path: str) -> bytes:
        """
        Read and decompress one entry.

        Raises:
            KeyError: If the entry does not exist.
            InvalidFormatError: If the entry cannot be decompressed.
        """
        info = self._infos[path]
        try:
            with self._lock:
                return self._zf.read(info)
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError, NotImplementedError) as e:
            raise InvalidFormatError(f"Cannot decompress entry {path!r}: {e}") from e

    def content_xml(self) -> bytes:
        """Bytes of the root document."""
        return self.read(self.root_document)

    # ─── Declared Content Types ───────────────────────────────────────────

    def declared_type(self, path: str) -> Optional[str]:
        """
        Content type declared for an entry by [Content_Types].xml.

        Overrides (by part name) win over defaults (by extension).
        """
        override = self._override_types.get("/" + path.lstrip("/").lower())
        if override:
            return override
        ext = posixpath.splitext(path)[1].lstrip(".").lower()
        return self._default_types.get(ext) if ext else None

    # ─── Internals ────────────────────────────────────────────────────────

    def _find_root_document(self) -> Optional[str]:
        for path, info in self._infos.items():
            if not info.is_dir() and path.strip().lower() == ROOT_DOCUMENT:
                return path
        return None

    def _load_content_types(self):
        part = next(
            (p for p in self._infos if p.lower() == CONTENT_TYPES_PART.lower()),
            None,
        )
        if part is None:
            return

        try:
            root = DefusedET.fromstring(self.read(part))
        except (ParseError, DefusedXmlException, InvalidFormatError) as e:
            logger.warning(f"Ignoring unreadable {CONTENT_TYPES_PART}: {e}")
            return

        for elem in root:
            tag = _local_name(elem.tag)
            content_type = (elem.get("ContentType") or "").strip()
            if not content_type:
                continue
            if tag == "Default" and elem.get("Extension"):
                self._default_types[elem.get("Extension").lower()] = content_type
            elif tag == "Override" and elem.get("PartName"):
                self._override_types[elem.get("PartName").lower()] = content_type
