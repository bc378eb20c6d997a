"""
Delay policy calculator.

``calculate_resume_at`` maps DELAY node parameters and the current time to
the moment the paused workflow becomes due. It never reads the wall clock,
so the result is fully determined by ``now`` and ``params``.

Supported ``delayType`` values:

- ``period``: ``delayAmount`` x ``delayUnit`` (Minutes, Hours, Days, Weeks) after now
- ``timeOfDay``: next ``timeOfDay`` ("HH:MM") strictly after now
- ``dateAndTime``: ``specificDateTime`` as given, even if already past
- ``dayOfWeek``: noon on the next allowed weekday from ``daysOfWeek``

Anything else, and any malformed parameters, resolves to the default delay.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.exceptions import SchedulingParamError
from core.logger import get_logger

logger = get_logger("delay")

DEFAULT_DELAY = timedelta(minutes=5)
DAY_OF_WEEK_HOUR = 12
DAY_OF_WEEK_MINUTE = 0

UNIT_DURATIONS: Dict[str, timedelta] = {
    "minutes": timedelta(minutes=1),
    "hours": timedelta(hours=1),
    "days": timedelta(days=1),
    "weeks": timedelta(weeks=1),
}

WEEKDAYS: Dict[str, int] = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}


class DelayParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    delay_type: str | None = Field(default=None, alias="delayType")
    delay_amount: int | None = Field(default=None, alias="delayAmount")
    delay_unit: str | None = Field(default=None, alias="delayUnit")
    time_of_day: str | None = Field(default=None, alias="timeOfDay")
    days_of_week: Dict[str, bool] | None = Field(default=None, alias="daysOfWeek")
    specific_date_time: datetime | None = Field(default=None, alias="specificDateTime")


def _localize(naive: datetime, reference: datetime) -> datetime:
    """Attach ``reference``'s timezone to a naive wall-clock value."""
    tz = reference.tzinfo
    if tz is None:
        return naive
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def _normalize(value: datetime) -> datetime:
    # pytz offsets are fixed per instance and must be refreshed after arithmetic
    tz = value.tzinfo
    if tz is not None and hasattr(tz, "normalize"):
        return tz.normalize(value)
    return value


def _at(reference: datetime, day: date, hour: int, minute: int) -> datetime:
    return _localize(datetime.combine(day, time(hour, minute)), reference)


def _parse_time_of_day(value: str | None) -> tuple[int, int]:
    if not value:
        raise SchedulingParamError("timeOfDay is required")
    try:
        hour_text, minute_text = value.strip().split(":")[:2]
        hour, minute = int(hour_text), int(minute_text)
    except ValueError as exc:
        raise SchedulingParamError(f"Invalid timeOfDay: {value!r}") from exc
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise SchedulingParamError(f"timeOfDay out of range: {value!r}")
    return hour, minute


def _period(now: datetime, params: DelayParams) -> datetime:
    if params.delay_amount is None or params.delay_amount < 0:
        raise SchedulingParamError(f"Invalid delayAmount: {params.delay_amount!r}")
    unit = UNIT_DURATIONS.get((params.delay_unit or "").lower())
    if unit is None:
        raise SchedulingParamError(f"Unknown delayUnit: {params.delay_unit!r}")
    return _normalize(now + unit * params.delay_amount)


def _time_of_day(now: datetime, params: DelayParams) -> datetime:
    hour, minute = _parse_time_of_day(params.time_of_day)
    candidate = _at(now, now.date(), hour, minute)
    if candidate <= now:
        candidate = _at(now, now.date() + timedelta(days=1), hour, minute)
    return candidate


def _date_and_time(now: datetime, params: DelayParams) -> datetime:
    if params.specific_date_time is None:
        raise SchedulingParamError("specificDateTime is required")
    value = params.specific_date_time
    if value.tzinfo is None and now.tzinfo is not None:
        return _localize(value, now)
    if value.tzinfo is not None and now.tzinfo is None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _day_of_week(now: datetime, params: DelayParams, default_delay: timedelta) -> datetime:
    allowed = set()
    for name, enabled in (params.days_of_week or {}).items():
        weekday = WEEKDAYS.get(name.strip().lower()[:3])
        if weekday is None:
            raise SchedulingParamError(f"Unknown weekday: {name!r}")
        if enabled:
            allowed.add(weekday)

    if not allowed:
        return _normalize(now + default_delay)

    for offset in range(7):
        day = now.date() + timedelta(days=offset)
        if day.weekday() in allowed:
            candidate = _at(now, day, DAY_OF_WEEK_HOUR, DAY_OF_WEEK_MINUTE)
            if candidate > now:
                return candidate

    # Only today is allowed and noon has passed: roll into next week.
    days_ahead = min(((weekday - now.weekday()) % 7) or 7 for weekday in allowed)
    return _at(now, now.date() + timedelta(days=days_ahead), DAY_OF_WEEK_HOUR, DAY_OF_WEEK_MINUTE)


def calculate_resume_at(
    now: datetime,
    params: Mapping[str, Any] | None,
    default_delay: timedelta = DEFAULT_DELAY,
) -> datetime:
    try:
        try:
            parsed = DelayParams.model_validate(dict(params or {}))
        except ValidationError as exc:
            raise SchedulingParamError(str(exc)) from exc

        if parsed.delay_type == "period":
            return _period(now, parsed)
        if parsed.delay_type == "timeOfDay":
            return _time_of_day(now, parsed)
        if parsed.delay_type == "dateAndTime":
            return _date_and_time(now, parsed)
        if parsed.delay_type == "dayOfWeek":
            return _day_of_week(now, parsed, default_delay)
    except SchedulingParamError as exc:
        logger.warning("Invalid delay parameters, using default delay: %s", exc)
        return _normalize(now + default_delay)

    # customField and unknown policies
    logger.info("Delay type %r has no dedicated policy, using default delay", parsed.delay_type)
    return _normalize(now + default_delay)
