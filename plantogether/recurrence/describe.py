"""Human-readable descriptions of recurrence rules."""

from plantogether.models.constants import WEEKDAY_NAMES
from plantogether.models.recurrence import RecurrenceKind, RecurrenceRule


_UNITS = {
    RecurrenceKind.DAILY: ("day", "days"),
    RecurrenceKind.MONTHLY: ("month", "months"),
    RecurrenceKind.YEARLY: ("year", "years"),
}


def describe_rule(rule: RecurrenceRule) -> str:
    """Describe a rule the way the calendar UI labels it (e.g. "Every 2 weeks on Monday")."""
    interval = rule.effective_interval

    if rule.kind == RecurrenceKind.ONCE:
        return "One time"

    if rule.kind == RecurrenceKind.WEEKLY:
        day_name = WEEKDAY_NAMES[rule.anchor_weekday]
        if interval == 1:
            return f"Every {day_name}"
        return f"Every {interval} weeks on {day_name}"

    singular, plural = _UNITS[rule.kind]
    if interval == 1:
        return f"Every {singular}"
    return f"Every {interval} {plural}"
