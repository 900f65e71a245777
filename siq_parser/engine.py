"""
Package Parser Engine
=====================
Main orchestrator: opens the archive, indexes its entries, walks the
question tree and assembles the output collections.

Usage:
    engine = ParserEngine(config)
    contents = engine.parse(siq_bytes)
    # contents is a PackageContents with questions, file storage,
    # round types and a parse report

Architecture:
    bytes → Archive → CandidateIndex + content.xml tree →
    (per question) SchemaAdapter → ContentClassifier → MediaResolver →
    SpecialClassifier → Question / FileStorageEntry → ValidationEngine →
    PackageContents
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Optional
from xml.etree.ElementTree import Element, ParseError

from defusedxml import ElementTree as DefusedET
from defusedxml.common import DefusedXmlException

from .archive import Archive
from .content import classify_content
from .exceptions import InvalidFormatError
from .models import (
    FileStorageEntry,
    MediaBlob,
    MediaKind,
    PackageContents,
    PackageInfo,
    Question,
    QuestionType,
    RoundKind,
    Slot,
)
from .paths import CandidateIndex
from .resolver import DEFAULT_LOOSE_MATCH_MIN_LENGTH, MediaResolver
from .schema import (
    NoContent,
    child,
    decode_slot,
    extract_content_items,
    get_text,
    local_name,
    path,
)
from .special import classify_special, extract_answer_options, is_select_question
from .validator import Diagnostics, ValidationEngine

logger = logging.getLogger(__name__)

FINAL_ROUND_MARKER = "final"

# Accepted spellings of a question's score, in priority order
SCORE_ATTRIBUTES = ("price", "Price", "PRICE", "cost", "Cost", "value", "Value")
SCORE_ELEMENTS = ("price", "cost", "value")

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ID_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]")


@dataclass
class ParserConfig:
    """Configuration for the parser engine."""

    # Processing
    max_workers: int = 1
    stable_ids: bool = True
    loose_match_min_length: int = DEFAULT_LOOSE_MATCH_MIN_LENGTH

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class QuestionJob:
    """One question element with everything known before content parsing."""
    position: int
    question_id: str
    round_name: str
    category: str
    score: int
    element: Element


@dataclass
class ParseContext:
    """
    State owned by a single parse call.

    The archive and index are read-only once built; diagnostics are
    lock-protected, so workers may share one context.
    """
    archive: Archive
    index: CandidateIndex
    resolver: MediaResolver
    diagnostics: Diagnostics = field(default_factory=Diagnostics)


# ─── Helpers ──────────────────────────────────────────────────────────────────


def parse_int(value: Optional[str]) -> Optional[int]:
    """Leading integer of a string, or None."""
    if value is None:
        return None
    match = _LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else None


def parse_score(question: Element) -> Optional[int]:
    """
    Score of a question element from its accepted attribute and element
    spellings. Returns None when no spelling parses; negatives clamp to 0.
    """
    values = [question.get(name) for name in SCORE_ATTRIBUTES]
    values += [get_text(child(question, name)) or None for name in SCORE_ELEMENTS]

    for value in values:
        score = parse_int(value)
        if score is not None:
            return max(score, 0)
    return None


def make_question_id(round_name: str, category: str, score: int, suffix: str) -> str:
    """round_category_score_suffix, restricted to [A-Za-z0-9_-]."""
    return _ID_UNSAFE_RE.sub("", f"{round_name}_{category}_{score}_{suffix}")


def answer_text(question: Element, slot_text: Optional[str]) -> Optional[str]:
    """
    First right answer, with any answer-slot text appended in parentheses.
    """
    answers = path(question, "right", "answer")
    text = get_text(answers[0]) if answers else ""
    if slot_text:
        text = f"{text} ({slot_text})" if text else slot_text
    return text or None


# ─── Engine ───────────────────────────────────────────────────────────────────


class ParserEngine:
    """
    Package parsing engine.

    Orchestrates the full pipeline:
        1. Archive opening and content type discovery
        2. Candidate index build
        3. Question tree walk (rounds → themes → questions)
        4. Per-question content, media and special-type resolution
        5. Report

    Every call owns its own ParseContext, so one engine can parse
    independent packages concurrently.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        self.config = config or ParserConfig()
        self._setup_logging()

    def _setup_logging(self):
        """Configure logging based on config."""
        log_level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        # Configure root logger for the package
        pkg_logger = logging.getLogger("siq_parser")
        pkg_logger.setLevel(log_level)

        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler
        if not pkg_logger.handlers:
            console = logging.StreamHandler()
            console.setLevel(log_level)
            console.setFormatter(formatter)
            pkg_logger.addHandler(console)

        # File handler
        if self.config.log_file:
            log_path = Path(self.config.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            already_attached = any(
                isinstance(h, logging.FileHandler)
                and Path(h.baseFilename) == log_path.resolve()
                for h in pkg_logger.handlers
            )
            if not already_attached:
                file_handler = logging.FileHandler(log_path, encoding="utf-8")
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                pkg_logger.addHandler(file_handler)

    # ─── Public API ───────────────────────────────────────────────────────

    def parse_file(
        self,
        package_path: str,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> PackageContents:
        """
        Parse a package file from disk.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            InvalidFormatError: If the package cannot be parsed.
        """
        p = Path(package_path)
        if not p.is_file():
            raise FileNotFoundError(f"Package not found: {package_path}")
        logger.info(f"Reading package: {p}")
        return self.parse(p.read_bytes(), progress_callback=progress_callback)

    def parse(
        self,
        data: bytes,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> PackageContents:
        """
        Parse package bytes into an ordered question set.

        Args:
            data: Raw bytes of the zip archive.
            progress_callback: Callback(done, total) after each question.

        Returns:
            PackageContents; nothing is exposed before the parse completes.

        Raises:
            InvalidFormatError: If the archive cannot be opened or its
                content.xml is missing, empty or unparsable.
        """
        start_time = time.time()

        with Archive.open(data) as archive:
            # ── Step 1: Root document ─────────────────────────────────
            root = self._parse_document(archive)
            info = self._package_info(root)
            logger.info(
                f"Parsing package {info.name or '(unnamed)'!r} "
                f"(schema version {info.version or '?'})"
            )

            # ── Step 2: Index archive entries ─────────────────────────
            files = [p for p in archive.list_entries() if not archive.is_dir(p)]
            index = CandidateIndex.build(files)
            ctx = ParseContext(
                archive=archive,
                index=index,
                resolver=MediaResolver(
                    archive,
                    index,
                    loose_match_min_length=self.config.loose_match_min_length,
                ),
            )

            # ── Step 3: Walk the question tree ────────────────────────
            jobs, round_types, theme_count = self._collect_jobs(root, ctx.diagnostics)

            # ── Step 4: Build questions ───────────────────────────────
            built = self._build_all(ctx, jobs, progress_callback)

        questions = [q for q, _ in built]
        file_storage = {q.id: entry for q, entry in built if entry is not None}

        # ── Step 5: Report ────────────────────────────────────────────
        report = ValidationEngine().validate(
            questions,
            ctx.diagnostics,
            round_count=len(round_types),
            theme_count=theme_count,
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Parse complete in {elapsed:.2f}s — "
            f"{len(questions)} questions, {len(file_storage)} with media"
        )

        return PackageContents(
            info=info,
            questions=questions,
            file_storage=file_storage,
            round_types=round_types,
            report=report,
        )

    def read_info(self, archive: Archive) -> PackageInfo:
        """
        Package attributes of an open archive, without walking questions.

        Raises:
            InvalidFormatError: If content.xml is empty or unparsable.
        """
        return self._package_info(self._parse_document(archive))

    # ─── Pipeline Steps ───────────────────────────────────────────────────

    def _parse_document(self, archive: Archive) -> Element:
        raw = archive.content_xml()
        if not raw.strip():
            raise InvalidFormatError(f"Invalid package: {archive.root_document} is empty")
        try:
            return DefusedET.fromstring(raw)
        except (ParseError, DefusedXmlException) as e:
            raise InvalidFormatError(
                f"Invalid package: cannot parse {archive.root_document}: {e}"
            ) from e

    def _package_info(self, root: Element) -> PackageInfo:
        if local_name(root.tag) != "package":
            logger.warning(f"Unexpected root element <{local_name(root.tag)}>")
        return PackageInfo(
            name=root.get("name", ""),
            version=root.get("version", ""),
            package_id=root.get("id", ""),
            date=root.get("date", ""),
        )

    def _collect_jobs(
        self, root: Element, diagnostics: Diagnostics
    ) -> tuple[list[QuestionJob], dict[str, RoundKind], int]:
        """
        Walk rounds, themes and questions in document order.

        Ids are assigned here, before any content is parsed, so they
        depend only on document position.
        """
        jobs: list[QuestionJob] = []
        round_types: dict[str, RoundKind] = {}
        seen_ids: set[str] = set()
        theme_count = 0

        for round_index, round_elem in enumerate(path(root, "rounds", "round"), start=1):
            round_name = (round_elem.get("name") or "").strip() or f"Round {round_index}"
            is_final = round_elem.get("type") == FINAL_ROUND_MARKER
            if round_name in round_types:
                logger.warning(f"Duplicate round name {round_name!r}")
            round_types[round_name] = RoundKind.FINAL if is_final else RoundKind.REGULAR

            for theme in path(round_elem, "themes", "theme"):
                theme_count += 1
                category = theme.get("name", "")

                for q_elem in path(theme, "questions", "question"):
                    position = len(jobs) + 1
                    score = parse_score(q_elem)
                    question_id = self._next_id(
                        round_name, category, score or 0, position, seen_ids
                    )
                    if score is None:
                        logger.warning(
                            f"No parsable score for question {question_id}, using 0"
                        )
                        diagnostics.malformed_score(position, question_id)

                    jobs.append(QuestionJob(
                        position=position,
                        question_id=question_id,
                        round_name=round_name,
                        category=category,
                        score=score or 0,
                        element=q_elem,
                    ))

        logger.info(
            f"Found {len(round_types)} rounds, {theme_count} themes, "
            f"{len(jobs)} questions"
        )
        return jobs, round_types, theme_count

    def _next_id(
        self,
        round_name: str,
        category: str,
        score: int,
        position: int,
        seen: set[str],
    ) -> str:
        if self.config.stable_ids:
            question_id = make_question_id(round_name, category, score, f"{position:04d}")
        else:
            question_id = make_question_id(round_name, category, score, uuid.uuid4().hex[:5])
            while question_id in seen:
                question_id = make_question_id(
                    round_name, category, score, uuid.uuid4().hex[:5]
                )
        seen.add(question_id)
        return question_id

    def _build_all(
        self,
        ctx: ParseContext,
        jobs: list[QuestionJob],
        progress_callback: Optional[Callable[[int, int], None]],
    ) -> list[tuple[Question, Optional[FileStorageEntry]]]:
        """Build every question; output order is job order."""
        build = partial(self._build_question, ctx)
        total = len(jobs)
        built = []

        if self.config.max_workers > 1 and total > 1:
            logger.debug(f"Building questions with {self.config.max_workers} workers")
            with ThreadPoolExecutor(
                max_workers=self.config.max_workers,
                thread_name_prefix="siq-question",
            ) as pool:
                # map() yields in submission order
                for result in pool.map(build, jobs):
                    built.append(result)
                    if progress_callback:
                        progress_callback(len(built), total)
        else:
            for job in jobs:
                built.append(build(job))
                if progress_callback:
                    progress_callback(len(built), total)

        return built

    def _build_question(
        self, ctx: ParseContext, job: QuestionJob
    ) -> tuple[Question, Optional[FileStorageEntry]]:
        """Assemble one question and its file storage entry."""
        q_elem = job.element

        question_shape = decode_slot(q_elem, Slot.QUESTION)
        if isinstance(question_shape, NoContent):
            logger.debug(f"Question {job.question_id} has no question content")
            ctx.diagnostics.empty_slot(job.position, job.question_id)

        question_data = classify_content(
            question_shape.items, self._resolver_for(ctx, job, Slot.QUESTION)
        )
        answer_data = classify_content(
            extract_content_items(q_elem, Slot.ANSWER),
            self._resolver_for(ctx, job, Slot.ANSWER),
        )

        qtype = question_data.type
        options: Optional[list[str]] = None
        if is_select_question(q_elem):
            qtype = QuestionType.SELECT
            options = extract_answer_options(q_elem) or None

        special = classify_special(q_elem)

        question = Question(
            id=job.question_id,
            round=job.round_name,
            category=job.category,
            score=job.score,
            type=qtype,
            question_text=question_data.text,
            answer_text=answer_text(q_elem, answer_data.text),
            answer_options=options,
            special_type=special.special_type,
            special_description=special.description,
            question_media=question_data.media(),
            answer_media=answer_data.media(),
        )
        entry = FileStorageEntry.from_media(question.question_media, question.answer_media)
        return question, entry

    def _resolver_for(
        self, ctx: ParseContext, job: QuestionJob, slot: Slot
    ) -> Callable[[str, MediaKind], Optional[MediaBlob]]:
        """Resolver bound to one question slot; misses are recorded."""

        def resolve(reference: str, kind: MediaKind) -> Optional[MediaBlob]:
            blob = ctx.resolver.resolve(reference, kind)
            if blob is None:
                ctx.diagnostics.media_miss(
                    job.position, job.question_id, slot, reference, kind
                )
            return blob

        return resolve


def parse_package(data: bytes, config: Optional[ParserConfig] = None) -> PackageContents:
    """
    Parse package bytes with a fresh engine.

    Raises:
        InvalidFormatError: If the root document is missing or unparsable.
    """
    return ParserEngine(config).parse(data)
