from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Tuple

from gradecore.core.distribution import MarkDistribution
from gradecore.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

AMBIGUOUS_SCOPE = "ambiguous distribution scope"


def _specificity(
    distribution: MarkDistribution,
    subject_id: Optional[str],
    semester: Optional[str],
) -> Optional[Tuple[int, int]]:
    if distribution.subject_id is not None and distribution.subject_id != subject_id:
        return None
    if distribution.semester is not None and distribution.semester != semester:
        return None
    return (
        int(distribution.subject_id is not None),
        int(distribution.semester is not None),
    )


def resolve_distribution(
    distributions: Iterable[MarkDistribution],
    *,
    class_id: str,
    academic_year: str,
    subject_id: Optional[str] = None,
    semester: Optional[str] = None,
) -> Optional[MarkDistribution]:
    """Pick the distribution that applies to a class/subject/year/semester.

    Only active distributions of the same class and year are considered. A
    distribution with a null subject or semester covers every value of it.
    The most specific match wins, an exact subject outranking an exact
    semester. Returns None when nothing applies.
    """
    ranked: List[Tuple[Tuple[int, int], MarkDistribution]] = []
    for distribution in distributions:
        if not distribution.is_active:
            continue
        if distribution.class_id != class_id or distribution.academic_year != academic_year:
            continue
        rank = _specificity(distribution, subject_id, semester)
        if rank is not None:
            ranked.append((rank, distribution))

    if not ranked:
        logger.info(
            "No mark distribution for class %s, subject %s, year %s, semester %s",
            class_id,
            subject_id or "all",
            academic_year,
            semester or "-",
        )
        return None

    ranked.sort(key=lambda item: item[0], reverse=True)
    best_rank, best = ranked[0]
    if len(ranked) > 1 and ranked[1][0] == best_rank:
        raise ConfigurationError(AMBIGUOUS_SCOPE, "scope")
    return best
