"""
Shared alert hook.
Used by observation_service when a violation opens or closes.
Extend here to add push notifications, SMS, email, etc.
"""

from typing import Optional

from app.utils.logger import get_logger

logger = get_logger(__name__)


async def create_alert(alert_type: str, lot_id: str, description: str,
                       violation_id: Optional[str] = None):
    """Emit one alert line. Alerts are not stored; the violation record is the audit trail."""
    ref = f" ({violation_id})" if violation_id else ""
    logger.warning(f"[ALERT][{alert_type.upper()}] {lot_id}{ref}: {description}")
    # Extend here: push notification, SMS, email, etc.
