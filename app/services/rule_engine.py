"""
Violation rule engine — compliance status derivation and penalty calculation.

Pure functions only: no store access and no clock. Callers pass `now` in, so
grace-period expiry is re-evaluated at call time rather than by a timer.

State machine per lot:
    compliant    → grace_period   count > capacity and grace > 0
    compliant    → violating      count > capacity and no grace
    grace_period → violating      now >= breach start + grace, still over capacity
    grace_period → compliant      count <= capacity before expiry (breach discarded)
    violating    → compliant      count <= capacity (violation closed, penalty set)
"""

from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional


class ComplianceStatus(str, Enum):
    COMPLIANT = "compliant"
    GRACE_PERIOD = "grace_period"
    VIOLATING = "violating"


class Transition(str, Enum):
    NONE = "none"
    GRACE_STARTED = "grace_started"
    GRACE_DISCARDED = "grace_discarded"
    OPENED = "opened"          # direct compliant → violating
    ESCALATED = "escalated"    # grace expired, violation materialized
    UPDATED = "updated"        # still violating, peak/evidence refreshed
    CLOSED = "closed"


def is_over_capacity(current_count: int, allowed_capacity: int) -> bool:
    return current_count > allowed_capacity


def excess_of(current_count: int, allowed_capacity: int) -> int:
    return max(0, current_count - allowed_capacity)


def grace_expires_at(breach_started_at: datetime, grace_minutes: int) -> datetime:
    return breach_started_at + timedelta(minutes=grace_minutes)


def grace_expired(breach_started_at: datetime, grace_minutes: int, now: datetime) -> bool:
    return now >= grace_expires_at(breach_started_at, grace_minutes)


def derive_status(
    current_count: int,
    allowed_capacity: int,
    grace_minutes: int,
    now: datetime,
    breach_started_at: Optional[datetime] = None,
    has_active_violation: bool = False,
) -> ComplianceStatus:
    """
    Status of one lot at `now`.
    `breach_started_at` is the start of a pending (grace) breach, if any;
    a lot already carrying an active violation never drops back to grace.
    """
    if not is_over_capacity(current_count, allowed_capacity):
        return ComplianceStatus.COMPLIANT
    if has_active_violation or grace_minutes <= 0:
        return ComplianceStatus.VIOLATING
    if breach_started_at is not None and grace_expired(breach_started_at, grace_minutes, now):
        return ComplianceStatus.VIOLATING
    return ComplianceStatus.GRACE_PERIOD


def elapsed_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole wall-clock minutes between two instants (floored, never negative)."""
    seconds = (ended_at - started_at).total_seconds()
    return max(0, int(seconds // 60))


def round_half_away_from_zero(value: Decimal) -> int:
    # decimal's ROUND_HALF_UP rounds ties away from zero: 2.5 → 3, -2.5 → -3
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_penalty(max_excess: int, duration_minutes: int, penalty_rate_per_hour: float) -> int:
    """
    penalty = round(maxExcess × durationMinutes / 60 × ratePerHour)
    Evaluated in Decimal so exact .5 results round away from zero.
    """
    if max_excess <= 0 or duration_minutes <= 0:
        return 0
    amount = (
        Decimal(max_excess)
        * Decimal(duration_minutes)
        * Decimal(str(penalty_rate_per_hour))
        / Decimal(60)
    )
    return round_half_away_from_zero(amount)
