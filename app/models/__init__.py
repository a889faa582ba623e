# Parking compliance — in-memory domain models
# Import all models here so callers can use `from app.models import ...`

from app.models.parking_lot import ParkingLot, CountHistoryPoint, PendingBreach   # noqa
from app.models.violation import Violation, Evidence, ViolationStatus            # noqa
