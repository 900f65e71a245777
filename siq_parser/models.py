"""
Data Models
===========
Pydantic models for the structured output of a package parse.
Question metadata is JSON-serializable; media bytes are kept on the
models but excluded from dumps so consumers can persist questions
without blobs.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# ─── Enums ────────────────────────────────────────────────────────────────────


class RoundKind(str, Enum):
    """Game mode of a round."""
    REGULAR = "regular"
    FINAL = "final"


class QuestionType(str, Enum):
    """Presentation type inferred for a question."""
    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"
    SELECT = "select"


class SpecialType(str, Enum):
    """Non-default question behaviour markers."""
    CAT = "cat"
    BET = "bet"
    SPECIAL = "special"
    AUCTION = "auction"


class ContentKind(str, Enum):
    """Kind of a single content item or atom in the XML."""
    TEXT = "text"
    SAY = "say"
    IMAGE = "image"
    VOICE = "voice"
    AUDIO = "audio"
    VIDEO = "video"


class Slot(str, Enum):
    """Content slot of a question."""
    QUESTION = "question"
    ANSWER = "answer"


class MediaKind(str, Enum):
    """Asset folder kind used when resolving a media reference."""
    IMAGES = "Images"
    AUDIO = "Audio"
    VIDEO = "Video"


# ─── Content Models ───────────────────────────────────────────────────────────


class ContentItem(BaseModel):
    """One piece of question or answer content, before classification."""
    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    value: str = ""


class MediaBlob(BaseModel):
    """A resolved archive entry with its MIME type."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Basename of the XML reference")
    path: str = Field(description="Canonical archive entry path")
    mime_type: str = "application/octet-stream"
    data: bytes = Field(default=b"", repr=False, exclude=True)

    @computed_field
    @property
    def size(self) -> int:
        return len(self.data)


class MediaSet(BaseModel):
    """Image/audio/video slots of one side of a question."""
    model_config = ConfigDict(frozen=True)

    image: Optional[MediaBlob] = None
    audio: Optional[MediaBlob] = None
    video: Optional[MediaBlob] = None

    @property
    def is_empty(self) -> bool:
        return self.image is None and self.audio is None and self.video is None


class ContentPayload(BaseModel):
    """Classified content of one slot."""
    type: QuestionType = QuestionType.TEXT
    text: Optional[str] = None
    image: Optional[MediaBlob] = None
    audio: Optional[MediaBlob] = None
    video: Optional[MediaBlob] = None

    def media(self) -> MediaSet:
        return MediaSet(image=self.image, audio=self.audio, video=self.video)


# ─── Question Model ──────────────────────────────────────────────────────────


class Question(BaseModel):
    """
    A fully assembled question, ready for the game runtime.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    round: str
    category: str
    score: int = Field(default=0, ge=0)
    type: QuestionType = QuestionType.TEXT
    question_text: Optional[str] = None
    answer_text: Optional[str] = None
    answer_options: Optional[list[str]] = None
    special_type: Optional[SpecialType] = None
    special_description: Optional[str] = None
    question_media: MediaSet = Field(default_factory=MediaSet)
    answer_media: MediaSet = Field(default_factory=MediaSet)

    @computed_field
    @property
    def has_media(self) -> bool:
        return not (self.question_media.is_empty and self.answer_media.is_empty)


class FileStorageEntry(BaseModel):
    """Named blob slots for one question id."""
    model_config = ConfigDict(frozen=True)

    question_image: Optional[MediaBlob] = None
    question_audio: Optional[MediaBlob] = None
    question_video: Optional[MediaBlob] = None
    answer_image: Optional[MediaBlob] = None
    answer_audio: Optional[MediaBlob] = None
    answer_video: Optional[MediaBlob] = None

    @classmethod
    def from_media(
        cls, question_media: MediaSet, answer_media: MediaSet
    ) -> Optional["FileStorageEntry"]:
        """Build an entry, or None when neither side has any blob."""
        if question_media.is_empty and answer_media.is_empty:
            return None
        return cls(
            question_image=question_media.image,
            question_audio=question_media.audio,
            question_video=question_media.video,
            answer_image=answer_media.image,
            answer_audio=answer_media.audio,
            answer_video=answer_media.video,
        )

    def slots(self) -> dict[str, MediaBlob]:
        """Filled slots keyed by slot name."""
        return {
            name: blob
            for name in type(self).model_fields
            if (blob := getattr(self, name)) is not None
        }


# ─── Report Models ───────────────────────────────────────────────────────────


class MediaMiss(BaseModel):
    """A media reference that no archive entry matched."""
    question_id: str
    slot: Slot
    reference: str
    kind: MediaKind


class ParseReport(BaseModel):
    """Non-fatal irregularities and counts for one parse."""
    round_count: int = 0
    theme_count: int = 0
    question_count: int = 0
    questions_with_media: int = 0
    type_breakdown: dict[str, int] = Field(default_factory=dict)
    special_questions: dict[str, int] = Field(default_factory=dict)
    media_misses: list[MediaMiss] = Field(default_factory=list)
    empty_slots: list[str] = Field(default_factory=list)
    malformed_scores: list[str] = Field(default_factory=list)

    @computed_field
    @property
    def media_miss_count(self) -> int:
        return len(self.media_misses)


# ─── Package Models ──────────────────────────────────────────────────────────


class PackageInfo(BaseModel):
    """Attributes of the root <package> element."""
    name: str = ""
    version: str = ""
    package_id: str = ""
    date: str = ""


class PackageContents(BaseModel):
    """
    Complete output of a package parse.
    Questions are in document order (rounds, then themes, then questions).
    """
    model_config = ConfigDict(frozen=True)

    info: PackageInfo = Field(default_factory=PackageInfo)
    questions: list[Question] = Field(default_factory=list)
    file_storage: dict[str, FileStorageEntry] = Field(default_factory=dict)
    round_types: dict[str, RoundKind] = Field(default_factory=dict)
    report: ParseReport = Field(default_factory=ParseReport)

    def round_names(self) -> list[str]:
        """Round names in document order."""
        return list(self.round_types)

    def questions_by_round(self) -> dict[str, list[Question]]:
        """Bucket questions by round, preserving document order."""
        buckets: dict[str, list[Question]] = {name: [] for name in self.round_types}
        for q in self.questions:
            buckets.setdefault(q.round, []).append(q)
        return buckets
