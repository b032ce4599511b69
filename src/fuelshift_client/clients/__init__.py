from .base import BaseClient
from .shift_store_client import RemoteShiftStore, ShiftStoreClient

__all__ = ["BaseClient", "RemoteShiftStore", "ShiftStoreClient"]
