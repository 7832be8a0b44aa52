"""
Study week calculation.

A participant's week is derived from their profile's enrollment timestamp.
The result gates which weekly artifacts are valid, so bad input degrades to
week 1 instead of raising: a hard failure would lock the participant out.
"""
import math
from datetime import datetime, timezone
from typing import List, Dict, Optional, Union

import config
from core.logger import logger


SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(value: Union[datetime, str]) -> datetime:
    """Coerce a datetime or ISO-8601 string to an aware UTC datetime."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise TypeError(f"Expected datetime or ISO string, got {type(value).__name__}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def week_number(
    enrolled_at: Union[datetime, str, None],
    now: Optional[Union[datetime, str]] = None,
    max_week: Optional[int] = None
) -> int:
    """
    Calculate the 1-based study week for an enrollment timestamp.

    Args:
        enrolled_at: Profile enrollment timestamp (naive values are UTC)
        now: Reference time (defaults to current UTC time)
        max_week: Upper bound (defaults to STUDY_LENGTH_WEEKS)

    Returns:
        Week number in [1, max_week]. Never raises.
    """
    cap = max_week or config.STUDY_LENGTH_WEEKS
    try:
        start = _as_utc(enrolled_at)
        current = _as_utc(now) if now is not None else datetime.now(timezone.utc)

        elapsed_days = (current - start).total_seconds() / SECONDS_PER_DAY
        if elapsed_days < 0:
            # Clock skew or enrollment in the future
            return 1

        return min(math.floor(elapsed_days / 7) + 1, cap)
    except (TypeError, ValueError, OverflowError) as e:
        logger.warning(f"Could not calculate week number from {enrolled_at!r}: {e}")
        return 1


def week_options(max_week: Optional[int] = None) -> List[Dict[str, object]]:
    """Week choices for selectors: [{"value": 1, "label": "Week 1"}, ...]."""
    cap = max_week or config.STUDY_LENGTH_WEEKS
    return [{"value": n, "label": f"Week {n}"} for n in range(1, cap + 1)]
