"""
Observation apply path — the one route from a producer (HTTP endpoint,
simulator tick, replay) into the store.
Applies the observation, logs the lifecycle transition and raises alerts
for violations opening or closing.
"""

from datetime import datetime
from typing import Optional

from app.exceptions import ParkingMonitorError
from app.models.views import ObservationResult
from app.services.alert_service import create_alert
from app.services.observation_source import Observation
from app.services.occupancy_store import OccupancyStore
from app.services.rule_engine import Transition
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def handle_observation(store: OccupancyStore, observation: Observation) -> ObservationResult:
    """Apply one observation. Store errors propagate to the caller."""
    result = store.apply_observation(
        observation.lot_id,
        observation.vehicle_count,
        observation.observed_at,
        camera_id=observation.camera_id,
        lot_section=observation.lot_section,
    )
    logger.info(
        f"[OBS] {result.lot_id}: count={result.vehicle_count} "
        f"{result.previous_status.value}→{result.status.value} ({result.transition.value})"
    )

    violation = result.violation
    if result.escalated:
        await create_alert("violation_opened", result.lot_id,
                           f"Grace period expired, over capacity since {violation.started_at.isoformat()}",
                           violation.id)
    if result.transition == Transition.OPENED:
        await create_alert("violation_opened", result.lot_id,
                           f"Over capacity by {violation.max_excess} vehicles", violation.id)
    elif result.transition == Transition.CLOSED:
        await create_alert("violation_closed", result.lot_id,
                           f"Back within capacity after {violation.duration_minutes} min, "
                           f"peak excess {violation.max_excess}, penalty {violation.penalty_amount}",
                           violation.id)
    elif result.transition == Transition.GRACE_STARTED:
        logger.info(f"[GRACE] {result.lot_id}: over capacity, grace period started")
    elif result.transition == Transition.GRACE_DISCARDED:
        logger.info(f"[GRACE] {result.lot_id}: back within capacity before grace expiry, breach discarded")

    return result


async def submit_observation(store: OccupancyStore, observation: Observation) -> Optional[ObservationResult]:
    """
    Consumer-facing variant for polling loops: a rejected observation is a
    no-op (previous state retained) and is logged instead of raised.
    """
    try:
        return await handle_observation(store, observation)
    except ParkingMonitorError as e:
        logger.warning(f"[OBS] Rejected observation for {observation.lot_id}: {e}")
        return None


async def poll_grace_expiry(store: OccupancyStore, now: Optional[datetime] = None):
    """Promote expired grace breaches without waiting for the next observation."""
    promoted = store.evaluate_grace_expiry(now)
    for violation in promoted:
        await create_alert("violation_opened", violation.lot_id,
                           f"Grace period expired, over capacity since {violation.started_at.isoformat()}",
                           violation.id)
    return promoted
