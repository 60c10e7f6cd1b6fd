"""Build submission quota check for Coverity Scan.

https://scan.coverity.com/faq#frequency caps submissions by project size:

* up to 28 builds per week (4 per day) below 100K lines of code
* up to 21 builds per week (3 per day) for 100K to 500K lines
* up to 14 builds per week (2 per day) for 500K to 1M lines
* up to 7 builds per week (1 per day) above 1M lines

Leaving at least 12 hours between submissions keeps every project size inside
its cap.
"""

import logging
import re
from typing import Optional

from entities import QuotaState, TimeUnit

logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT_HOURS = 12


def _amount_before(text: str, unit: str) -> int:
    search_result = re.search(r"(\d+)\s*{}".format(unit), text)
    if search_result is None:
        search_result = re.match(r"\s*(\d+)", text)
    if search_result:
        return int(search_result.group(1))
    return 0


def evaluate_quota(last_build_analyzed: Optional[str], limit_hours: int = DEFAULT_TIME_LIMIT_HOURS) -> QuotaState:
    """Decides whether a new scan may be submitted, given e.g. "3 days ago".

    The day tier runs first. Only when it does not clear the quota does the
    hour tier run, and its verdict replaces the day tier's. Text without a
    recognised unit or a positive amount leaves the quota full.
    """
    text = last_build_analyzed or ""
    quota_full = True
    settled_by_day = False

    days = _amount_before(text, "day") if "day" in text else 0
    hours = days * 24
    logger.debug("day: (%s) day, (%s) hour", days, hours)
    if hours > 0 and hours > limit_hours:
        logger.debug("day: the last build passed %s hours", limit_hours)
        quota_full = False
        settled_by_day = True

    hour_amount = 0
    if not settled_by_day:
        hour_amount = _amount_before(text, "hour") if "hour" in text else 0
        logger.debug("hour: (%s) hour", hour_amount)
        if hour_amount > 0 and hour_amount > limit_hours:
            logger.debug("hour: the last build passed %s hours", limit_hours)
            quota_full = False
        else:
            quota_full = True

    if "day" in text:
        state = QuotaState(amount=days, unit=TimeUnit.DAY, quota_full=quota_full)
    else:
        state = QuotaState(amount=hour_amount, unit=TimeUnit.HOUR, quota_full=quota_full)

    logger.info(describe_quota(state, text, limit_hours))
    return state


def describe_quota(state: QuotaState, text: str = "", limit_hours: int = DEFAULT_TIME_LIMIT_HOURS) -> str:
    if state.quota_full:
        return "Last build analyzed '{}': less than {} hours ago, the build quota is full".format(text, limit_hours)
    return "Last build analyzed '{}': more than {} hours ago, a new build may be submitted".format(text, limit_hours)
