# apps/staff/recommendations.py
from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence, Set, TypeVar

from django.conf import settings

from apps.appointments.exceptions import DependencyError

from . import directory

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _norm(s: str) -> str:
    return " ".join((s or "").strip().lower().split())


def specialization_keywords(symptom_tags: Iterable[str], mapping: Optional[dict] = None) -> Set[str]:
    """Keywords a relevant specialization should contain, for the given symptom tags."""
    if mapping is None:
        mapping = settings.SCHEDULING.get("SYMPTOM_SPECIALIZATIONS", {})
    lookup = {_norm(tag): words for tag, words in mapping.items()}

    keywords: Set[str] = set()
    for tag in symptom_tags or ():
        keywords.update(_norm(w) for w in lookup.get(_norm(tag), ()))
    return keywords


def is_recommended(staff, keywords: Set[str]) -> bool:
    specialization = _norm(getattr(staff, "specialization", "") or "")
    return bool(specialization) and any(k in specialization for k in keywords)


def rank_staff_for_context(
    symptom_tags: Iterable[str],
    staff_list: Sequence[T],
    mapping: Optional[dict] = None,
) -> List[T]:
    """
    Recommended staff first, everyone else after.

    Pure: nothing is read besides `specialization` on each item, and the
    relative input order is kept inside both groups. With no matching tags
    the input order comes back unchanged.
    """
    keywords = specialization_keywords(symptom_tags, mapping)
    recommended: List[T] = []
    other: List[T] = []
    for staff in staff_list:
        (recommended if is_recommended(staff, keywords) else other).append(staff)
    return recommended + other


def recommend_available_staff(
    symptom_tags: Iterable[str],
    role: Optional[str] = "doctor",
    on_date: Optional[date] = None,
) -> list:
    """Ranked roster of available staff; an unreachable directory gives []."""
    try:
        roster = directory.list_available(role, on_date)
    except DependencyError:
        logger.warning("staff directory unavailable; no recommendations", exc_info=True)
        return []
    return rank_staff_for_context(symptom_tags, roster)
