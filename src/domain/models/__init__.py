from .realtime import VehicleRecord
from .snapshot import EMPTY_FINGERPRINT, Snapshot

__all__ = [
    "EMPTY_FINGERPRINT",
    "Snapshot",
    "VehicleRecord",
]
