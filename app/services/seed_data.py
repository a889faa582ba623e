"""
Provisioned roster: five MCD Delhi lots plus their violation history.
Timestamps are relative to the `now` passed in, so a freshly built store
always shows today's/this week's activity. Penalties of resolved seed
violations are computed with the live formula.
"""

from datetime import datetime, timedelta, timezone

from app.config import settings
from app.models.parking_lot import ParkingLot
from app.models.violation import Evidence, Violation, ViolationStatus
from app.services.occupancy_store import OccupancyStore, evidence_hash
from app.services.rule_engine import compute_penalty

CONTRACTOR = "MCD"
SECTIONS = ["A", "B", "C", "D"]

# id, name, capacity, count, rate/hour, grace minutes, lat, lon, age in days
LOTS = [
    ("lot-001", "MCD Parking — Asaf Ali Road", 120, 95, 500, None, 28.6406, 77.2401, 365),
    ("lot-002", "MCD Car Parking — Qulab Colony", 80, 92, 400, None, 28.6512, 77.2180, 300),
    ("lot-003", "MCD Scooter Parking — Qutub Road Market", 200, 180, 300, 10, 28.6429, 77.2150, 400),
    ("lot-004", "MCD Parking — Padam Singh Road", 150, 165, 450, None, 28.6519, 77.1905, 200),
    ("lot-005", "MCD Authorized Lot Parking — SBI Edayazham", 100, 78, 350, None, 28.6127, 77.2273, 500),
]

# id, lot id, started (minutes ago), duration minutes (None = active), peak count, rule version, evidence items
VIOLATIONS = [
    ("viol-001", "lot-002", 45, None, 92, "v2.3", 3),
    ("viol-002", "lot-004", 20, None, 165, "v1.8", 1),
    ("viol-003", "lot-001", 6 * 60, 120, 138, "v2.3", 8),
    ("viol-004", "lot-002", 24 * 60, 90, 102, "v2.1", 6),
    ("viol-005", "lot-003", 2 * 24 * 60, 45, 225, "v1.5", 3),
    ("viol-006", "lot-004", 3 * 24 * 60, 180, 180, "v2.3", 12),
    ("viol-007", "lot-005", 5 * 24 * 60, 60, 112, "v1.2", 4),
    ("viol-008", "lot-001", 7 * 24 * 60, 75, 140, "v2.1", 5),
]


def build_seed_lots(now: datetime) -> list[ParkingLot]:
    lots = []
    for lot_id, name, capacity, count, rate, grace, lat, lon, age_days in LOTS:
        lots.append(ParkingLot(
            id=lot_id,
            name=name,
            contractor=CONTRACTOR,
            allowed_capacity=capacity,
            current_count=count,
            penalty_rate_per_hour=rate,
            grace_period_minutes=grace if grace is not None else settings.DEFAULT_GRACE_PERIOD_MINUTES,
            latitude=lat,
            longitude=lon,
            created_at=now - timedelta(days=age_days),
            updated_at=now,
        ))
    return lots


def _seed_evidence(violation: Violation, items: int) -> list[Evidence]:
    evidence = []
    for i in range(items):
        captured_at = violation.started_at + timedelta(minutes=15 * i)
        count = violation.peak_count - (i % 3)
        evidence.append(Evidence(
            id=f"ev-{violation.id}-{i}",
            violation_id=violation.id,
            captured_at=captured_at,
            vehicle_count=count,
            sha256_hash=evidence_hash(violation.lot_id, count, captured_at),
            camera_id=f"CAM-{violation.lot_id[-3:]}-{i % 4}",
            lot_section=SECTIONS[i % len(SECTIONS)],
        ))
    return evidence


def build_seed_violations(now: datetime, lots: list[ParkingLot]) -> list[Violation]:
    by_id = {lot.id: lot for lot in lots}
    violations = []
    for viol_id, lot_id, minutes_ago, duration, peak, rule_version, items in VIOLATIONS:
        lot = by_id[lot_id]
        started_at = now - timedelta(minutes=minutes_ago)
        violation = Violation(
            id=viol_id,
            lot_id=lot_id,
            lot_name=lot.name,
            contractor=lot.contractor,
            allowed_capacity=lot.allowed_capacity,
            started_at=started_at,
            peak_count=peak,
            rule_version=rule_version,
        )
        if duration is not None:
            violation.ended_at = started_at + timedelta(minutes=duration)
            violation.duration_minutes = duration
            violation.penalty_amount = compute_penalty(violation.max_excess, duration, lot.penalty_rate_per_hour)
            violation.status = ViolationStatus.RESOLVED
        violation.evidence = _seed_evidence(violation, items)
        violations.append(violation)
    return violations


def build_seeded_store(**kwargs) -> OccupancyStore:
    """Store provisioned with the seed roster; kwargs are passed to OccupancyStore."""
    clock = kwargs.get("clock")
    now = clock() if clock else datetime.now(timezone.utc)
    lots = build_seed_lots(now)
    return OccupancyStore(lots, build_seed_violations(now, lots), **kwargs)
