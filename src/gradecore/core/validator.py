from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from gradecore.core.distribution import (
    COMPONENTS,
    Component,
    DistributionScope,
    GradeSystem,
    MarkDistribution,
    RoundingMethod,
    is_finite_number,
)
from gradecore.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

MAXIMUM_INVALID = "component maximum must be a non-negative integer"
TOTAL_MISMATCH = "total marks must equal the sum of component maxima"
TOTAL_NOT_POSITIVE = "total marks must be greater than 0"
WEIGHTAGE_OUT_OF_RANGE = "weightage must be between 0 and 100"
WEIGHTAGE_ON_UNUSED_COMPONENT = "weightage must be 0 for a component with maximum 0"
WEIGHTAGE_SUM_INVALID = "weightage sum invalid"
GRACE_LIMIT_OUT_OF_RANGE = "grace marks limit must be between 0 and 50"
PASSING_PERCENTAGE_OUT_OF_RANGE = "passing percentage must be between 0 and 100"
ROUNDING_METHOD_INVALID = "unknown rounding method"
GRADE_SYSTEM_INVALID = "unknown grade system"

# Weightage sums must be exact up to binary float summation noise.
WEIGHTAGE_REL_TOLERANCE = 1e-12
WEIGHTAGE_ABS_TOLERANCE = 1e-9
MAX_GRACE_MARKS_LIMIT = 50


@dataclass(frozen=True)
class ValidatedDistribution:
    """A MarkDistribution that passed every check in :func:`validate`.

    Only :func:`validate` builds these; the calculator refuses anything else.
    """

    distribution: MarkDistribution
    total_marks: int
    weighted: bool
    components: Tuple[Component, ...]
    rounding_method: RoundingMethod
    grade_system: GradeSystem

    @property
    def scope(self) -> DistributionScope:
        return self.distribution.scope

    @property
    def passing_percentage(self) -> float:
        return float(self.distribution.passing_percentage)

    @property
    def allow_grace_marks(self) -> bool:
        return bool(self.distribution.allow_grace_marks)

    @property
    def grace_marks_limit(self) -> float:
        if not self.allow_grace_marks:
            return 0.0
        return float(self.distribution.grace_marks_limit)

    def maximum(self, component: Component) -> int:
        return self.distribution.maximum(component)

    def weightage(self, component: Component) -> float:
        return float(self.distribution.weightage(component))


def _is_exactly(value: float, target: float) -> bool:
    return math.isclose(value, target, rel_tol=WEIGHTAGE_REL_TOLERANCE, abs_tol=WEIGHTAGE_ABS_TOLERANCE)


def _reject(reason: str, field: Optional[str] = None) -> ConfigurationError:
    logger.info("Rejected mark distribution: %s%s", reason, f" [{field}]" if field else "")
    return ConfigurationError(reason, field)


def validate(distribution: MarkDistribution) -> ValidatedDistribution:
    """Check a distribution for internal consistency.

    Raises ConfigurationError with a distinct reason for the first failed check.
    """
    for component in COMPONENTS:
        maximum = distribution.maximum(component)
        if isinstance(maximum, bool) or not isinstance(maximum, int) or maximum < 0:
            raise _reject(MAXIMUM_INVALID, f"{component.value}_marks")

    component_sum = sum(distribution.maximum(component) for component in COMPONENTS)
    if distribution.total_marks is not None and distribution.total_marks != component_sum:
        raise _reject(TOTAL_MISMATCH, "total_marks")
    if component_sum <= 0:
        raise _reject(TOTAL_NOT_POSITIVE, "total_marks")

    active = tuple(c for c in COMPONENTS if distribution.maximum(c) > 0)

    for component in COMPONENTS:
        field = f"{component.value}_weightage"
        weightage = distribution.weightage(component)
        if not is_finite_number(weightage) or not 0 <= weightage <= 100:
            raise _reject(WEIGHTAGE_OUT_OF_RANGE, field)
        if component not in active and weightage != 0:
            raise _reject(WEIGHTAGE_ON_UNUSED_COMPONENT, field)

    weightage_sum = sum(float(distribution.weightage(c)) for c in active)
    if _is_exactly(weightage_sum, 100.0):
        weighted = True
    elif _is_exactly(weightage_sum, 0.0):
        weighted = False
    else:
        raise _reject(WEIGHTAGE_SUM_INVALID, "weightage")

    if distribution.allow_grace_marks:
        limit = distribution.grace_marks_limit
        if not is_finite_number(limit) or not 0 <= limit <= MAX_GRACE_MARKS_LIMIT:
            raise _reject(GRACE_LIMIT_OUT_OF_RANGE, "grace_marks_limit")

    passing = distribution.passing_percentage
    if not is_finite_number(passing) or not 0 <= passing <= 100:
        raise _reject(PASSING_PERCENTAGE_OUT_OF_RANGE, "passing_percentage")

    try:
        rounding_method = RoundingMethod(distribution.rounding_method)
    except ValueError as exc:
        raise _reject(ROUNDING_METHOD_INVALID, "rounding_method") from exc
    try:
        grade_system = GradeSystem(distribution.grade_system)
    except ValueError as exc:
        raise _reject(GRADE_SYSTEM_INVALID, "grade_system") from exc

    logger.debug(
        "Validated mark distribution %s: %s mode, total %d",
        distribution.id or distribution.name or "<unnamed>",
        "weighted" if weighted else "unweighted",
        component_sum,
    )
    return ValidatedDistribution(
        distribution=distribution,
        total_marks=component_sum,
        weighted=weighted,
        components=active,
        rounding_method=rounding_method,
        grade_system=grade_system,
    )
