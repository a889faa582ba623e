"""
Error taxonomy for the compliance core.
Routers map these to HTTP status codes in app/main.py.
"""


class ParkingMonitorError(Exception):
    """Base exception for all compliance-core errors."""


class NotFoundError(ParkingMonitorError):
    """Unknown lot or violation id."""

    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} '{item_id}' not found")


class InvalidInputError(ParkingMonitorError):
    """Negative capacity/count, malformed or stale timestamp."""

    def __init__(self, message: str, *, field: str = ""):
        self.field = field
        super().__init__(message)
