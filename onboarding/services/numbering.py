"""
Human-readable reference numbers.

Numbers come from a counter row per key, incremented while the row is
locked, so two concurrent requests never receive the same value.  The
target columns are unique as well; callers retry on ``IntegrityError``.
"""
from __future__ import annotations

import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from onboarding.exceptions import Conflict
from onboarding.models import NIGERIAN_STATES, SequenceCounter

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5


def next_value(key: str) -> int:
    for attempt in range(MAX_ATTEMPTS):
        try:
            with transaction.atomic():
                counter, _ = SequenceCounter.objects.select_for_update().get_or_create(key=key)
                counter.value += 1
                counter.save(update_fields=['value', 'updated_at'])
                return counter.value
        except IntegrityError:
            # Another request created the counter row first.
            logger.info('sequence %s contended (attempt %s)', key, attempt + 1)
    raise Conflict(f'Could not allocate a number for {key}.')


def _monthly(prefix: str, now=None) -> str:
    now = timezone.localtime(now or timezone.now())
    period = f"{prefix}-{now:%Y}-{now:%m}"
    return f"{period}-{next_value(period):06d}"


def application_number(now=None) -> str:
    """``APP-YYYY-MM-NNNNNN``, restarting every calendar month."""
    return _monthly('APP', now)


def contract_number(now=None) -> str:
    """``CON-YYYY-MM-NNNNNN``, restarting every calendar month."""
    return _monthly('CON', now)


def hospital_code(state: str) -> str:
    """``HOSP-<state code>-NNNNN``, counted per state."""
    abbr = NIGERIAN_STATES.get(state, 'XX')
    key = f"HOSP-{abbr}"
    return f"{key}-{next_value(key):05d}"
