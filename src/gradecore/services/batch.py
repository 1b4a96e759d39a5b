from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from gradecore.config.settings import settings
from gradecore.core.distribution import ComponentScoreSet, DistributionScope, MarkDistribution
from gradecore.core.errors import ScoreIntegrityError
from gradecore.core.grades import GradeResult, compute_grade
from gradecore.core.validator import ValidatedDistribution, validate

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4
DEFAULT_CHUNK_SIZE = 200


@dataclass(frozen=True)
class BatchOptions:
    max_workers: int = DEFAULT_MAX_WORKERS
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

    @classmethod
    def from_settings(cls) -> "BatchOptions":
        return cls(max_workers=settings.batch_max_workers, chunk_size=settings.batch_chunk_size)


@dataclass(frozen=True)
class StudentFailure:
    student_id: str
    component: str
    score: Any
    maximum: int
    message: str

    @classmethod
    def from_error(cls, student_id: str, exc: ScoreIntegrityError) -> "StudentFailure":
        return cls(
            student_id=student_id,
            component=exc.component,
            score=exc.score,
            maximum=exc.maximum,
            message=str(exc),
        )


StudentOutcome = Union[GradeResult, StudentFailure]


@dataclass(frozen=True)
class BatchReport:
    scope: DistributionScope
    results: Dict[str, GradeResult] = field(default_factory=dict)
    failures: Dict[str, StudentFailure] = field(default_factory=dict)
    skipped: Tuple[str, ...] = ()
    cancelled: bool = False

    @property
    def total_processed(self) -> int:
        return len(self.results) + len(self.failures)

    @property
    def incomplete_count(self) -> int:
        return sum(1 for result in self.results.values() if result.is_incomplete)

    @property
    def integrity_failure_count(self) -> int:
        return len(self.failures)

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results.values() if result.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results.values() if not result.passed)

    @property
    def entries(self) -> Dict[str, StudentOutcome]:
        merged: Dict[str, StudentOutcome] = {}
        merged.update(self.results)
        merged.update(self.failures)
        return merged


def _grade_student(
    distribution: ValidatedDistribution,
    student_id: str,
    scores: ComponentScoreSet,
    cancel_event: Optional[threading.Event],
) -> Optional[StudentOutcome]:
    if cancel_event is not None and cancel_event.is_set():
        return None
    try:
        return compute_grade(distribution, scores)
    except ScoreIntegrityError as exc:
        logger.warning("Score integrity error for student %s: %s", student_id, exc)
        return StudentFailure.from_error(student_id, exc)


def compute_batch(
    distribution: ValidatedDistribution,
    score_sets: Mapping[str, ComponentScoreSet],
    *,
    options: Optional[BatchOptions] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchReport:
    """Grade every student in ``score_sets`` against one distribution.

    Students are graded independently on a bounded thread pool, one chunk at a
    time. A score integrity error is recorded for that student only. Once
    ``cancel_event`` is set no new students are started; they are reported as
    skipped.
    """
    if not isinstance(distribution, ValidatedDistribution):
        raise TypeError("compute_batch requires a ValidatedDistribution; call validate() first")
    options = options or BatchOptions()

    roster: List[Tuple[str, ComponentScoreSet]] = list(score_sets.items())
    scope = distribution.scope
    logger.info(
        "Grading %d students for class %s, subject %s, year %s, semester %s",
        len(roster),
        scope.class_id,
        scope.subject_id or "all",
        scope.academic_year,
        scope.semester or "-",
    )

    outcomes: Dict[str, StudentOutcome] = {}
    if roster:
        workers = min(options.max_workers, len(roster))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gradecore") as pool:
            for start in range(0, len(roster), options.chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    break
                chunk = roster[start:start + options.chunk_size]
                futures = [
                    (student_id, pool.submit(_grade_student, distribution, student_id, scores, cancel_event))
                    for student_id, scores in chunk
                ]
                for student_id, future in futures:
                    outcome = future.result()
                    if outcome is not None:
                        outcomes[student_id] = outcome

    results: Dict[str, GradeResult] = {}
    failures: Dict[str, StudentFailure] = {}
    skipped: List[str] = []
    for student_id, _ in roster:
        outcome = outcomes.get(student_id)
        if outcome is None:
            skipped.append(student_id)
        elif isinstance(outcome, StudentFailure):
            failures[student_id] = outcome
        else:
            results[student_id] = outcome

    report = BatchReport(
        scope=scope,
        results=results,
        failures=failures,
        skipped=tuple(skipped),
        cancelled=bool(skipped),
    )
    if report.cancelled:
        logger.info("Batch cancelled; %d students skipped", len(skipped))
    logger.info(
        "Batch finished: %d processed, %d passed, %d failed, %d incomplete, %d integrity errors",
        report.total_processed,
        report.passed_count,
        report.failed_count,
        report.incomplete_count,
        report.integrity_failure_count,
    )
    return report


def grade_roster(
    distribution: MarkDistribution,
    score_sets: Mapping[str, ComponentScoreSet],
    *,
    options: Optional[BatchOptions] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchReport:
    """Validate ``distribution`` and grade the roster against it.

    A ConfigurationError is raised before any student is graded.
    """
    validated = validate(distribution)
    return compute_batch(validated, score_sets, options=options, cancel_event=cancel_event)
