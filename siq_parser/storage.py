"""
Media Storage Helpers
=====================
Turns resolved media into forms consumers can carry around:

    - data URLs for JSON transport (HTTP service, --json-output)
    - files on disk, one folder per question id

Directory Layout (export_media):
    <out_dir>/
    └── {question_id}/
        ├── question_image_{name}
        └── answer_audio_{name}
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path

from .models import MediaBlob, PackageContents
from .resolver import GENERIC_MIME, mime_from_extension

logger = logging.getLogger(__name__)


def to_data_url(blob: MediaBlob) -> str:
    """
    Encode a blob as a data URL.

    Generic binary blobs get the MIME type of their extension when it is
    known, since players refuse octet-stream media.
    """
    mime = blob.mime_type or GENERIC_MIME
    if mime == GENERIC_MIME:
        mime = mime_from_extension(blob.name) or mime_from_extension(blob.path) or mime
    encoded = base64.b64encode(blob.data).decode("ascii")
    return f"data:{mime};base64,{encoded}"


def contents_to_json(contents: PackageContents, include_media: bool = False) -> dict:
    """
    JSON-safe dict of a parse result.

    Blob bytes are never part of the question metadata; with
    include_media, each file storage slot also carries a data URL.
    """
    data = contents.model_dump(mode="json")
    if include_media:
        for qid, entry in contents.file_storage.items():
            slots = data["file_storage"][qid]
            for slot, blob in entry.slots().items():
                slots[slot]["data_url"] = to_data_url(blob)
    return data


def export_media(contents: PackageContents, out_dir: str) -> dict[str, dict[str, str]]:
    """
    Write every file storage blob under out_dir.

    Returns:
        Mapping question id -> slot -> written file path.
    """
    root = Path(out_dir)
    manifest: dict[str, dict[str, str]] = {}

    for qid, entry in contents.file_storage.items():
        question_dir = root / _sanitize_name(qid)
        question_dir.mkdir(parents=True, exist_ok=True)

        for slot, blob in entry.slots().items():
            dest = question_dir / f"{slot}_{_sanitize_name(blob.name)}"
            dest.write_bytes(blob.data)
            manifest.setdefault(qid, {})[slot] = str(dest)

    written = sum(len(slots) for slots in manifest.values())
    logger.info(f"Exported {written} media files to: {root}")
    return manifest


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _sanitize_name(name: str) -> str:
    """Sanitize a name for filesystem use."""
    safe = "".join(
        c if c.isalnum() or c in "-_. " else "_"
        for c in name
    ).strip().replace(" ", "_")[:100]
    return safe.lstrip(".") or "media"
