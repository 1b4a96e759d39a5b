from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union

from gradecore.core.distribution import (
    COMPONENTS,
    ComponentScoreSet,
    GradeSystem,
    RoundingMethod,
    is_finite_number,
)
from gradecore.core.errors import ScoreIntegrityError
from gradecore.core.validator import ValidatedDistribution

logger = logging.getLogger(__name__)

# Raw percentages are snapped to this many decimals before rounding so that
# float noise (49.00000000000001) cannot move a ceil/floor boundary.
ROUNDING_PRECISION = 9

LETTER_BANDS: List[Tuple[int, str]] = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
]

GRADE_POINTS: Dict[str, int] = {
    "A+": 10,
    "A": 9,
    "B+": 8,
    "B": 7,
    "C+": 6,
    "C": 5,
    "D": 4,
    "F": 0,
}


class GradeStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    ABSENT = "absent"


@dataclass(frozen=True)
class GradeResult:
    raw_weighted_percentage: float
    rounded_percentage: int
    grace_applied: bool
    grace_amount: float
    final_percentage: float
    letter_grade: str
    passed: bool
    missing_components: Tuple[str, ...]
    grade_point: int
    total_obtained: float
    total_possible: int
    grade_system: GradeSystem = GradeSystem.PERCENTAGE
    expected_components: int = 0

    @property
    def is_incomplete(self) -> bool:
        return bool(self.missing_components)

    @property
    def status(self) -> GradeStatus:
        if self.expected_components and len(self.missing_components) == self.expected_components:
            return GradeStatus.ABSENT
        return GradeStatus.PASS if self.passed else GradeStatus.FAIL

    @property
    def reported_grade(self) -> Union[float, int, str]:
        if self.grade_system is GradeSystem.GPA:
            return self.grade_point
        if self.grade_system is GradeSystem.LETTER:
            return self.letter_grade
        return self.final_percentage


def clamp_0_100(value: float) -> float:
    return max(0.0, min(100.0, value))


def apply_rounding(value: float, method: RoundingMethod) -> int:
    value = round(value, ROUNDING_PRECISION)
    method = RoundingMethod(method)
    if method is RoundingMethod.ROUND:
        # ties away from zero; the builtin round() rounds half to even
        return int(math.copysign(math.floor(abs(value) + 0.5), value))
    if method is RoundingMethod.CEIL:
        return math.ceil(value)
    if method is RoundingMethod.FLOOR:
        return math.floor(value)
    return math.trunc(value)


def grace_needed(rounded_percentage: float, passing_percentage: float, grace_marks_limit: float) -> float:
    """Smallest upward adjustment that reaches the pass mark, or 0.

    Only a shortfall in (0, grace_marks_limit] is bridged.
    """
    shortfall = passing_percentage - rounded_percentage
    if 0 < shortfall <= grace_marks_limit:
        return shortfall
    return 0.0


def to_letter_grade(percentage: float, passing_percentage: float) -> str:
    score = clamp_0_100(percentage)
    for threshold, letter in LETTER_BANDS:
        if score >= threshold:
            return letter
    if score >= passing_percentage:
        return "D"
    return "F"


def to_grade_point(letter_grade: str) -> int:
    try:
        return GRADE_POINTS[letter_grade.upper()]
    except KeyError as exc:
        raise ValueError(f"Unsupported letter grade: {letter_grade}") from exc


def _checked_scores(distribution: ValidatedDistribution, scores: ComponentScoreSet) -> Dict[str, float]:
    present: Dict[str, float] = {}
    for component in COMPONENTS:
        score = scores.get(component)
        if score is None:
            continue
        maximum = distribution.maximum(component)
        if maximum <= 0 or not is_finite_number(score) or not 0 <= score <= maximum:
            raise ScoreIntegrityError(component.value, score, maximum)
        present[component.value] = float(score)
    return present


def compute_grade(distribution: ValidatedDistribution, scores: ComponentScoreSet) -> GradeResult:
    """Grade one student's score set against a validated distribution.

    Absent components count as zero and are listed in ``missing_components``.
    Raises ScoreIntegrityError for a score outside its component's range.
    """
    if not isinstance(distribution, ValidatedDistribution):
        raise TypeError("compute_grade requires a ValidatedDistribution; call validate() first")

    present = _checked_scores(distribution, scores)
    missing = tuple(c.value for c in distribution.components if c.value not in present)

    if distribution.weighted:
        raw = 0.0
        for component in distribution.components:
            obtained = present.get(component.value, 0.0)
            raw += obtained * distribution.weightage(component) / distribution.maximum(component)
    else:
        raw = sum(present.values()) / distribution.total_marks * 100

    rounded = apply_rounding(raw, distribution.rounding_method)
    passing = distribution.passing_percentage

    grace = 0.0
    if distribution.allow_grace_marks:
        grace = grace_needed(rounded, passing, distribution.grace_marks_limit)

    if grace > 0:
        # rounded + shortfall is exactly the pass mark
        final = clamp_0_100(passing)
        logger.debug("Grace of %s applied (%d -> %s)", grace, rounded, final)
    else:
        final = clamp_0_100(float(rounded))

    if missing:
        logger.debug("Incomplete score set, missing: %s", ", ".join(missing))

    letter = to_letter_grade(final, passing)
    return GradeResult(
        raw_weighted_percentage=raw,
        rounded_percentage=rounded,
        grace_applied=grace > 0,
        grace_amount=grace,
        final_percentage=final,
        letter_grade=letter,
        passed=final >= passing,
        missing_components=missing,
        grade_point=to_grade_point(letter),
        total_obtained=sum(present.values()),
        total_possible=distribution.total_marks,
        grade_system=distribution.grade_system,
        expected_components=len(distribution.components),
    )
