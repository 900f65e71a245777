"""
Validation Engine
=================
Post-parse diagnostics and reporting.

During a parse every non-fatal irregularity is recorded:
    - Media references no archive entry matched
    - Question slots with neither content shape
    - Scores that did not parse as an integer

After the parse, ValidationEngine folds those records and the assembled
questions into a ParseReport and logs a summary.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter

from .models import MediaKind, MediaMiss, ParseReport, Question, Slot

logger = logging.getLogger(__name__)


class Diagnostics:
    """
    Thread-safe collector for the irregularities of one parse.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.media_misses: list[tuple[int, MediaMiss]] = []
        self.empty_slots: list[tuple[int, str]] = []
        self.malformed_scores: list[tuple[int, str]] = []

    def media_miss(
        self, position: int, question_id: str, slot: Slot, reference: str, kind: MediaKind
    ):
        miss = MediaMiss(question_id=question_id, slot=slot, reference=reference, kind=kind)
        with self._lock:
            self.media_misses.append((position, miss))

    def empty_slot(self, position: int, question_id: str):
        with self._lock:
            self.empty_slots.append((position, question_id))

    def malformed_score(self, position: int, question_id: str):
        with self._lock:
            self.malformed_scores.append((position, question_id))


class ValidationEngine:
    """
    Builds the ParseReport for a finished parse.
    """

    def validate(
        self,
        questions: list[Question],
        diagnostics: Diagnostics,
        round_count: int = 0,
        theme_count: int = 0,
    ) -> ParseReport:
        """
        Summarize parsed questions and recorded irregularities.

        Records are ordered by question position so reports are stable
        regardless of worker scheduling.
        """
        report = ParseReport(round_count=round_count, theme_count=theme_count)

        if not questions:
            logger.warning("Package contains no questions")

        report.question_count = len(questions)
        report.questions_with_media = sum(1 for q in questions if q.has_media)
        report.type_breakdown = dict(Counter(q.type.value for q in questions))
        report.special_questions = dict(
            Counter(q.special_type.value for q in questions if q.special_type)
        )
        report.media_misses = [
            miss for _, miss in sorted(diagnostics.media_misses, key=lambda r: r[0])
        ]
        report.empty_slots = [
            qid for _, qid in sorted(diagnostics.empty_slots, key=lambda r: r[0])
        ]
        report.malformed_scores = [
            qid for _, qid in sorted(diagnostics.malformed_scores, key=lambda r: r[0])
        ]

        logger.info("=" * 60)
        logger.info("PARSE REPORT")
        logger.info("=" * 60)
        logger.info(f"Rounds: {report.round_count}, Themes: {report.theme_count}")
        logger.info(f"Questions: {report.question_count}")
        logger.info(f"Questions With Media: {report.questions_with_media}")
        logger.info(f"Media Misses: {report.media_miss_count}")
        logger.info(f"Empty Question Slots: {len(report.empty_slots)}")
        logger.info(f"Malformed Scores: {len(report.malformed_scores)}")

        if report.type_breakdown:
            logger.info("Type Breakdown:")
            for qtype, count in sorted(report.type_breakdown.items()):
                logger.info(f"  • {qtype}: {count}")

        if report.special_questions:
            logger.info("Special Questions:")
            for special, count in sorted(report.special_questions.items()):
                logger.info(f"  • {special}: {count}")

        logger.info("=" * 60)

        return report
