from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal
from enum import Enum
import math
from numbers import Real
from typing import Dict, Mapping, Optional, Tuple


class Component(str, Enum):
    THEORY = "theory"
    PRACTICAL = "practical"
    INTERNAL = "internal"
    PROJECT = "project"
    ASSIGNMENT = "assignment"
    ATTENDANCE = "attendance"


COMPONENTS: Tuple[Component, ...] = tuple(Component)


def is_finite_number(value) -> bool:
    """True for finite ints, floats and Decimals; bools and other types are rejected."""
    if isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, int):
        return True
    if not isinstance(value, Real):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # a Real too large for a float is still finite
        return True


def _component_key(name) -> str:
    if isinstance(name, Component):
        return name.value
    return str(name).strip().lower()


class GradeSystem(str, Enum):
    PERCENTAGE = "percentage"
    GPA = "gpa"
    LETTER = "letter"


class RoundingMethod(str, Enum):
    ROUND = "round"
    CEIL = "ceil"
    FLOOR = "floor"
    TRUNCATE = "truncate"


@dataclass(frozen=True)
class DistributionScope:
    class_id: str
    academic_year: str
    subject_id: Optional[str] = None
    semester: Optional[str] = None


@dataclass(frozen=True)
class MarkDistribution:
    """Mark distribution for one class/subject/year/semester scope.

    Component maxima are points possible (0 = unused); weightages are the
    percentage each component contributes to the final result. When
    ``total_marks`` is None it is derived from the maxima.
    """

    class_id: str
    academic_year: str
    subject_id: Optional[str] = None
    semester: Optional[str] = None

    theory_marks: int = 0
    practical_marks: int = 0
    internal_marks: int = 0
    project_marks: int = 0
    assignment_marks: int = 0
    attendance_marks: int = 0
    total_marks: Optional[int] = None

    theory_weightage: float = 0.0
    practical_weightage: float = 0.0
    internal_weightage: float = 0.0
    project_weightage: float = 0.0
    assignment_weightage: float = 0.0
    attendance_weightage: float = 0.0

    grade_system: GradeSystem = GradeSystem.PERCENTAGE
    passing_percentage: float = 35.0
    allow_grace_marks: bool = False
    grace_marks_limit: float = 0
    rounding_method: RoundingMethod = RoundingMethod.ROUND

    id: Optional[str] = None
    name: str = ""
    description: str = ""
    is_active: bool = True
    created_by: Optional[str] = None

    @property
    def scope(self) -> DistributionScope:
        return DistributionScope(
            class_id=self.class_id,
            academic_year=self.academic_year,
            subject_id=self.subject_id,
            semester=self.semester,
        )

    def maximum(self, component: Component) -> int:
        return getattr(self, f"{Component(component).value}_marks")

    def weightage(self, component: Component) -> float:
        return getattr(self, f"{Component(component).value}_weightage")

    def maxima(self) -> Dict[Component, int]:
        return {component: self.maximum(component) for component in COMPONENTS}

    def weightages(self) -> Dict[Component, float]:
        return {component: self.weightage(component) for component in COMPONENTS}


@dataclass(frozen=True)
class ComponentScoreSet:
    """Recorded scores for one student; None means no score was recorded."""

    theory: Optional[float] = None
    practical: Optional[float] = None
    internal: Optional[float] = None
    project: Optional[float] = None
    assignment: Optional[float] = None
    attendance: Optional[float] = None

    @classmethod
    def from_mapping(cls, raw_scores: Mapping[str, Optional[float]]) -> "ComponentScoreSet":
        known = {f.name for f in fields(cls)}
        scores = {_component_key(name): value for name, value in raw_scores.items()}
        unknown = sorted(name for name in scores if name not in known)
        if unknown:
            raise ValueError(f"Unknown score components: {', '.join(unknown)}")
        return cls(**scores)

    def get(self, component: Component) -> Optional[float]:
        return getattr(self, Component(component).value)

    def is_present(self, component: Component) -> bool:
        return self.get(component) is not None
