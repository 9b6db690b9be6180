from __future__ import annotations

import logging
from typing import Dict, Iterable

from django.db import DatabaseError

from .models import Patient

logger = logging.getLogger(__name__)

UNKNOWN_PATIENT = "Unknown Patient"


def display_names(patient_ids: Iterable[str]) -> Dict[str, str]:
    """
    Resolve opaque patient ids to display names.

    Best effort: ids that aren't local primary keys, or that no longer exist,
    are simply absent from the result. An unreachable table yields {}.
    """
    wanted: dict[int, str] = {}
    for raw in patient_ids:
        text = str(raw or "").strip()
        if text.isdigit():
            wanted[int(text)] = text
    if not wanted:
        return {}

    try:
        rows = Patient.objects.filter(pk__in=wanted.keys()).only("given_name", "family_name")
        return {wanted[p.pk]: p.full_name or UNKNOWN_PATIENT for p in rows}
    except DatabaseError:
        logger.warning("patient directory unavailable; exporting without names", exc_info=True)
        return {}
