"""
Occupancy state store — single source of truth for the lot roster and the
violation set. Every write passes through apply_observation, so the
"at most one active violation per lot" invariant holds.

One re-entrant lock serializes writes and read projections: an observation
(lot + violation update) is applied as a unit and readers only ever receive
detached copies.
"""

import copy
import hashlib
import threading
from collections import deque
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from app.config import settings
from app.exceptions import InvalidInputError, NotFoundError
from app.models.parking_lot import CountHistoryPoint, ParkingLot, PendingBreach
from app.models.violation import Evidence, Violation, ViolationStatus
from app.models.views import (
    ActiveViolationSummary,
    AggregateStats,
    HeatmapCell,
    LotStatus,
    ObservationResult,
    OffenderSummary,
)
from app.services import rule_engine
from app.services.rule_engine import ComplianceStatus, Transition
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_violation_id() -> str:
    return f"viol-{uuid4().hex[:10]}"


def as_utc(value, field: str = "timestamp") -> datetime:
    """Validate a timestamp; naive datetimes are taken to be UTC."""
    if not isinstance(value, datetime):
        raise InvalidInputError(f"{field} must be a datetime, got {type(value).__name__}", field=field)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def evidence_hash(lot_id: str, vehicle_count: int, captured_at: datetime) -> str:
    payload = f"{lot_id}|{vehicle_count}|{captured_at.isoformat()}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class OccupancyStore:
    """In-memory store for lots, violations and pending grace breaches."""

    def __init__(
        self,
        lots: Iterable[ParkingLot],
        violations: Iterable[Violation] = (),
        *,
        clock: Callable[[], datetime] = _utcnow,
        rule_version: str = settings.RULE_VERSION,
        history_size: int = settings.COUNT_HISTORY_SIZE,
        id_factory: Callable[[], str] = _new_violation_id,
    ):
        self._clock = clock
        self._rule_version = rule_version
        self._history_size = history_size
        self._id_factory = id_factory
        self._lock = threading.RLock()

        self._seed_lots = [copy.deepcopy(lot) for lot in lots]
        self._seed_violations = [copy.deepcopy(v) for v in violations]
        self._validate_seed()

        self._lots: dict[str, ParkingLot] = {}
        self._violations: dict[str, Violation] = {}
        self._active: dict[str, str] = {}            # lot_id → active violation id
        self._pending: dict[str, PendingBreach] = {}
        self._history: dict[str, deque] = {}
        self._last_observed: dict[str, datetime] = {}
        self._restore_seed()

    # ── Provisioning ──────────────────────────────────────────────────────

    def _validate_seed(self):
        lot_ids = set()
        for lot in self._seed_lots:
            if lot.id in lot_ids:
                raise InvalidInputError(f"Duplicate lot id '{lot.id}'", field="id")
            lot_ids.add(lot.id)
            if lot.allowed_capacity <= 0:
                raise InvalidInputError(f"Lot '{lot.id}' capacity must be positive", field="allowed_capacity")
            if lot.current_count < 0:
                raise InvalidInputError(f"Lot '{lot.id}' count must be non-negative", field="current_count")
            if lot.penalty_rate_per_hour < 0:
                raise InvalidInputError(f"Lot '{lot.id}' penalty rate must be non-negative",
                                        field="penalty_rate_per_hour")
            if lot.grace_period_minutes is not None and lot.grace_period_minutes < 0:
                raise InvalidInputError(f"Lot '{lot.id}' grace period must be non-negative",
                                        field="grace_period_minutes")

        active_lots = set()
        for v in self._seed_violations:
            if v.lot_id not in lot_ids:
                raise NotFoundError("lot", v.lot_id)
            v.started_at = as_utc(v.started_at, "started_at")
            if v.ended_at is not None:
                v.ended_at = as_utc(v.ended_at, "ended_at")
            if v.is_active:
                if v.lot_id in active_lots:
                    raise InvalidInputError(f"Lot '{v.lot_id}' has more than one active violation")
                active_lots.add(v.lot_id)

    def _restore_seed(self):
        self._lots = {lot.id: copy.deepcopy(lot) for lot in self._seed_lots}
        self._violations = {v.id: copy.deepcopy(v) for v in self._seed_violations}
        self._active = {v.lot_id: v.id for v in self._violations.values() if v.is_active}
        self._pending = {}
        self._history = {lot_id: deque(maxlen=self._history_size) for lot_id in self._lots}
        self._last_observed = {}

        # Lots provisioned over capacity enter the lifecycle as of their last update
        for lot in self._lots.values():
            if lot.id in self._active or not rule_engine.is_over_capacity(lot.current_count, lot.allowed_capacity):
                continue
            since = as_utc(lot.updated_at or lot.created_at or self._clock(), "updated_at")
            if lot.grace_minutes > 0:
                self._pending[lot.id] = PendingBreach(lot_id=lot.id, started_at=since)
            else:
                violation = self._open_violation(lot, since, lot.current_count)
                self._append_evidence(violation, lot.current_count, since)
                logger.warning(f"Lot '{lot.id}' provisioned over capacity: opened {violation.id}")

    def reset_to_seed(self):
        """Restore lots and violations to their provisioned values."""
        with self._lock:
            self._restore_seed()
        logger.info(f"Store reset to seed: {len(self._lots)} lots, {len(self._violations)} violations")

    def now(self) -> datetime:
        return as_utc(self._clock(), "now")

    # ── Internal helpers (lock held) ──────────────────────────────────────

    def _get_lot(self, lot_id: str) -> ParkingLot:
        lot = self._lots.get(lot_id)
        if lot is None:
            raise NotFoundError("lot", lot_id)
        return lot

    def _active_violation(self, lot_id: str) -> Optional[Violation]:
        violation_id = self._active.get(lot_id)
        return self._violations[violation_id] if violation_id else None

    def _status(self, lot: ParkingLot, now: datetime) -> ComplianceStatus:
        pending = self._pending.get(lot.id)
        return rule_engine.derive_status(
            lot.current_count,
            lot.allowed_capacity,
            lot.grace_minutes,
            now,
            breach_started_at=pending.started_at if pending else None,
            has_active_violation=lot.id in self._active,
        )

    def _append_evidence(self, violation: Violation, count: int, captured_at: datetime,
                         camera_id: Optional[str] = None, lot_section: Optional[str] = None):
        violation.evidence.append(Evidence(
            id=f"ev-{violation.id}-{len(violation.evidence)}",
            violation_id=violation.id,
            captured_at=captured_at,
            vehicle_count=count,
            sha256_hash=evidence_hash(violation.lot_id, count, captured_at),
            camera_id=camera_id,
            lot_section=lot_section,
        ))

    def _open_violation(self, lot: ParkingLot, started_at: datetime, peak_count: int) -> Violation:
        violation = Violation(
            id=self._id_factory(),
            lot_id=lot.id,
            lot_name=lot.name,
            contractor=lot.contractor,
            allowed_capacity=lot.allowed_capacity,
            started_at=started_at,
            peak_count=peak_count,
            rule_version=self._rule_version,
        )
        self._violations[violation.id] = violation
        self._active[lot.id] = violation.id
        return violation

    def _close_violation(self, lot: ParkingLot, violation: Violation, ended_at: datetime):
        violation.ended_at = ended_at
        violation.duration_minutes = rule_engine.elapsed_minutes(violation.started_at, ended_at)
        violation.penalty_amount = rule_engine.compute_penalty(
            violation.max_excess, violation.duration_minutes, lot.penalty_rate_per_hour)
        violation.status = ViolationStatus.RESOLVED
        del self._active[lot.id]

    def _escalate(self, lot: ParkingLot, now: datetime) -> Optional[Violation]:
        """Promote an expired grace breach into a violation record (clock starts at the breach)."""
        pending = self._pending.get(lot.id)
        if pending is None or not rule_engine.grace_expired(pending.started_at, lot.grace_minutes, now):
            return None
        del self._pending[lot.id]
        violation = self._open_violation(lot, pending.started_at, lot.current_count)
        expired_at = rule_engine.grace_expires_at(pending.started_at, lot.grace_minutes)
        self._append_evidence(violation, lot.current_count, expired_at)
        return violation

    def _detached(self, violation: Violation, now: datetime) -> Violation:
        view = copy.deepcopy(violation)
        if view.is_active:
            view.duration_minutes = rule_engine.elapsed_minutes(view.started_at, now)
        return view

    # ── Commands ──────────────────────────────────────────────────────────

    def apply_observation(self, lot_id: str, vehicle_count: int, observed_at: datetime,
                          camera_id: Optional[str] = None,
                          lot_section: Optional[str] = None) -> ObservationResult:
        """
        Apply one vehicle-count observation and the lifecycle transition it causes.
        Validation happens before any mutation: a rejected observation leaves
        the previous state untouched.
        """
        with self._lock:
            lot = self._get_lot(lot_id)
            if isinstance(vehicle_count, bool) or not isinstance(vehicle_count, int):
                raise InvalidInputError("vehicle_count must be an integer", field="vehicle_count")
            if vehicle_count < 0:
                raise InvalidInputError(f"vehicle_count must be non-negative, got {vehicle_count}",
                                        field="vehicle_count")
            observed_at = as_utc(observed_at, "observed_at")
            floor = self._observation_floor(lot_id)
            if floor is not None and observed_at < floor:
                raise InvalidInputError(
                    f"Observation for lot '{lot_id}' at {observed_at.isoformat()} "
                    f"predates {floor.isoformat()}", field="observed_at")

            previous_status = self._status(lot, observed_at)

            # Grace expiry is judged on the count in effect up to this observation
            escalated = self._escalate(lot, observed_at)
            active = self._active_violation(lot_id)
            pending = self._pending.get(lot_id)

            lot.current_count = vehicle_count
            lot.updated_at = observed_at
            self._last_observed[lot_id] = observed_at
            self._history[lot_id].append(CountHistoryPoint(timestamp=observed_at, count=vehicle_count))

            over = rule_engine.is_over_capacity(vehicle_count, lot.allowed_capacity)
            transition = Transition.ESCALATED if escalated else Transition.NONE
            violation = active

            if active is not None:
                if over:
                    active.peak_count = max(active.peak_count, vehicle_count)
                    self._append_evidence(active, vehicle_count, observed_at, camera_id, lot_section)
                    if not escalated:
                        transition = Transition.UPDATED
                else:
                    self._close_violation(lot, active, observed_at)
                    transition = Transition.CLOSED
            elif pending is not None:
                if not over:
                    del self._pending[lot_id]
                    transition = Transition.GRACE_DISCARDED
            elif over:
                if lot.grace_minutes > 0:
                    self._pending[lot_id] = PendingBreach(lot_id=lot_id, started_at=observed_at)
                    transition = Transition.GRACE_STARTED
                else:
                    violation = self._open_violation(lot, observed_at, vehicle_count)
                    self._append_evidence(violation, vehicle_count, observed_at, camera_id, lot_section)
                    transition = Transition.OPENED

            return ObservationResult(
                lot_id=lot_id,
                vehicle_count=vehicle_count,
                observed_at=observed_at,
                previous_status=previous_status,
                status=self._status(lot, observed_at),
                transition=transition,
                escalated=escalated is not None,
                violation=self._detached(violation, observed_at) if violation else None,
            )

    def _observation_floor(self, lot_id: str) -> Optional[datetime]:
        """Earliest timestamp a new observation for this lot may carry."""
        candidates = [self._last_observed.get(lot_id)]
        active = self._active_violation(lot_id)
        if active is not None:
            candidates.append(active.started_at)
        pending = self._pending.get(lot_id)
        if pending is not None:
            candidates.append(pending.started_at)
        candidates = [c for c in candidates if c is not None]
        return max(candidates) if candidates else None

    def evaluate_grace_expiry(self, now: Optional[datetime] = None) -> list[Violation]:
        """Explicit poll: materialize every pending breach whose grace has run out."""
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            promoted = []
            for lot_id in list(self._pending):
                violation = self._escalate(self._lots[lot_id], now)
                if violation is not None:
                    promoted.append(self._detached(violation, now))
            return promoted

    # ── Queries ───────────────────────────────────────────────────────────

    def list_lots(self) -> list[ParkingLot]:
        with self._lock:
            return [copy.deepcopy(lot) for lot in self._lots.values()]

    def _lot_status(self, lot: ParkingLot, now: datetime) -> LotStatus:
        active = self._active_violation(lot.id)
        pending = self._pending.get(lot.id)
        summary = None
        if active is not None:
            summary = ActiveViolationSummary(
                id=active.id,
                lot_id=lot.id,
                started_at=active.started_at,
                max_excess=active.max_excess,
                current_excess=lot.excess,
                duration_minutes=rule_engine.elapsed_minutes(active.started_at, now),
            )
        return LotStatus(
            id=lot.id,
            name=lot.name,
            contractor=lot.contractor,
            allowed_capacity=lot.allowed_capacity,
            current_count=lot.current_count,
            penalty_rate_per_hour=lot.penalty_rate_per_hour,
            grace_period_minutes=lot.grace_minutes,
            utilization=lot.utilization,
            status=self._status(lot, now),
            active_violation=summary,
            breach_started_at=pending.started_at if pending else None,
            grace_expires_at=(rule_engine.grace_expires_at(pending.started_at, lot.grace_minutes)
                              if pending else None),
            latitude=lot.latitude,
            longitude=lot.longitude,
            updated_at=lot.updated_at,
            count_history=[copy.copy(p) for p in self._history[lot.id]],
        )

    def get_lot_status(self, lot_id: str, now: Optional[datetime] = None) -> LotStatus:
        """Read-only projection of one lot at `now`. Never mutates."""
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            return self._lot_status(self._get_lot(lot_id), now)

    def list_lot_statuses(self, now: Optional[datetime] = None) -> list[LotStatus]:
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            return [self._lot_status(lot, now) for lot in self._lots.values()]

    def get_violation(self, violation_id: str, now: Optional[datetime] = None) -> Violation:
        with self._lock:
            violation = self._violations.get(violation_id)
            if violation is None:
                raise NotFoundError("violation", violation_id)
            now = as_utc(now, "now") if now is not None else self.now()
            return self._detached(violation, now)

    def list_violations(self, status=None, lot_id: Optional[str] = None,
                        now: Optional[datetime] = None) -> list[Violation]:
        """Violations newest first; ties on startedAt are ordered by id."""
        if status is not None:
            try:
                status = ViolationStatus(status)
            except ValueError:
                raise InvalidInputError(f"Unknown violation status '{status}'", field="status")
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            result = [
                v for v in self._violations.values()
                if (status is None or v.status == status) and (lot_id is None or v.lot_id == lot_id)
            ]
            result.sort(key=lambda v: v.id)
            result.sort(key=lambda v: v.started_at, reverse=True)
            return [self._detached(v, now) for v in result]

    def get_chronic_offenders(self, now: Optional[datetime] = None) -> list[OffenderSummary]:
        """
        Violations grouped by contractor. Active violations count toward the
        total and contribute their in-progress duration, but no penalty.
        """
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            groups: dict[str, dict] = {}
            for v in self._violations.values():
                group = groups.setdefault(v.contractor, {"count": 0, "minutes": 0, "penalties": 0, "lots": []})
                group["count"] += 1
                if v.is_active:
                    group["minutes"] += rule_engine.elapsed_minutes(v.started_at, now)
                else:
                    group["minutes"] += v.duration_minutes
                    group["penalties"] += v.penalty_amount
                if v.lot_name not in group["lots"]:
                    group["lots"].append(v.lot_name)

        offenders = [
            OffenderSummary(
                contractor=contractor,
                total_violations=g["count"],
                total_violation_hours=round(g["minutes"] / 60, 2),
                total_penalties=g["penalties"],
                lots=sorted(g["lots"]),
            )
            for contractor, g in groups.items()
        ]
        offenders.sort(key=lambda o: o.contractor)
        offenders.sort(key=lambda o: o.total_violation_hours, reverse=True)
        return offenders

    def get_aggregate_stats(self, now: Optional[datetime] = None) -> AggregateStats:
        with self._lock:
            now = as_utc(now, "now") if now is not None else self.now()
            start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
            week_ago = now - timedelta(days=7)
            month_ago = now - timedelta(days=30)
            violations = list(self._violations.values())
            statuses = [self._status(lot, now) for lot in self._lots.values()]

            return AggregateStats(
                violations_today=sum(1 for v in violations if v.started_at >= start_of_day),
                violations_this_week=sum(1 for v in violations if v.started_at >= week_ago),
                violations_this_month=sum(1 for v in violations if v.started_at >= month_ago),
                total_penalties_assessed=sum(v.penalty_amount for v in violations if not v.is_active),
                active_violations=len(self._active),
                lots_in_compliance=statuses.count(ComplianceStatus.COMPLIANT),
                lots_in_grace_period=statuses.count(ComplianceStatus.GRACE_PERIOD),
                lots_violating=statuses.count(ComplianceStatus.VIOLATING),
            )

    def get_violation_heatmap(self) -> list[HeatmapCell]:
        """Violation starts bucketed by (day of week, hour) in UTC; full 7×24 grid, Sunday = 0."""
        with self._lock:
            counts = [[0] * 24 for _ in range(7)]
            for v in self._violations.values():
                day = (v.started_at.weekday() + 1) % 7
                counts[day][v.started_at.hour] += 1
        return [HeatmapCell(day_of_week=d, hour=h, count=counts[d][h]) for d in range(7) for h in range(24)]
