"""
Content Classifier
==================
Reduces the ordered content items of one slot to a single typed payload.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .models import (
    ContentItem,
    ContentKind,
    ContentPayload,
    MediaBlob,
    MediaKind,
    QuestionType,
)

logger = logging.getLogger(__name__)

# Values starting with this marker reference media, never literal text
REFERENCE_MARKER = "@"

Resolve = Callable[[str, MediaKind], Optional[MediaBlob]]


def classify_content(items: list[ContentItem], resolve: Resolve) -> ContentPayload:
    """
    Classify a slot's items.

    Text and say items are joined with newlines. The first image, audio
    and video item that resolves fills the matching media field. Any
    audio item moves the type from text to audio; any video item forces
    video, which outranks audio.

    Args:
        items: Content items in document order.
        resolve: Callable(reference, kind) returning a blob or None.
    """
    qtype = QuestionType.TEXT
    text_parts: list[str] = []
    image: Optional[MediaBlob] = None
    audio: Optional[MediaBlob] = None
    video: Optional[MediaBlob] = None

    for item in items:
        value = item.value

        if item.kind in (ContentKind.TEXT, ContentKind.SAY):
            if value and not value.startswith(REFERENCE_MARKER):
                text_parts.append(value)

        elif item.kind is ContentKind.IMAGE:
            if value and image is None:
                image = resolve(value, MediaKind.IMAGES)

        elif item.kind in (ContentKind.VOICE, ContentKind.AUDIO):
            if value:
                if audio is None:
                    audio = resolve(value, MediaKind.AUDIO)
                if qtype is QuestionType.TEXT:
                    qtype = QuestionType.AUDIO

        elif item.kind is ContentKind.VIDEO:
            if value:
                if video is None:
                    video = resolve(value, MediaKind.VIDEO)
                qtype = QuestionType.VIDEO

    text = "\n".join(text_parts).strip() or None

    return ContentPayload(
        type=qtype,
        text=text,
        image=image,
        audio=audio,
        video=video,
    )
