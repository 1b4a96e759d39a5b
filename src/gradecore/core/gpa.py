from itertools import chain
from typing import Iterable, Tuple

from gradecore.core.grades import GradeResult

CreditedResult = Tuple[int, GradeResult]


def _credit_weighted_points(subject_results: Iterable[CreditedResult], label: str, round_to: int) -> float:
    weighted_points = 0.0
    credit_total = 0
    for credits, result in subject_results:
        if credits <= 0:
            raise ValueError("Subject credits must be greater than 0")
        weighted_points += credits * result.grade_point
        credit_total += credits
    if credit_total == 0:
        raise ValueError(f"Cannot calculate {label} with zero total credits")
    return round(weighted_points / credit_total, round_to)


def calculate_sgpa(subject_results: Iterable[CreditedResult], *, round_to: int = 2) -> float:
    """
    subject_results: iterable of (credits, GradeResult) for one semester
    SGPA = Σ(credits * grade_point) / Σ(credits)
    """
    return _credit_weighted_points(subject_results, "SGPA", round_to)


def calculate_cgpa(semesters: Iterable[Iterable[CreditedResult]], *, round_to: int = 2) -> float:
    """CGPA over every subject of every semester, weighted by credits."""
    return _credit_weighted_points(chain.from_iterable(semesters), "CGPA", round_to)
