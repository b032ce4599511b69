from .clients.shift_store_client import RemoteShiftStore, ShiftStoreClient
from .config import ClientConfig, ConfigError, load_config
from .connectivity import ConnectivityMonitor
from .coordinator import ShiftCoordinator
from .error_mapper import ErrorMapper
from .exceptions import (
    ApiError,
    ConflictError,
    NoActiveShiftError,
    NotFoundError,
    ServerError,
    ShiftAlreadyOpenError,
    ShiftResolutionError,
    ShiftValidationError,
    TransportError,
)
from .http_client import HttpClient
from .lifecycle import ShiftLifecycleController
from .models import (
    CashReconciliation,
    PaymentMethodEntry,
    PaymentMethodKind,
    SalesTotal,
    Shift,
    ShiftStatus,
)
from .payments import PaymentReconciliationManager, cash_total, compute_cash_difference, reconcile
from .resolver import ActiveShiftResolver
from .retry import retry_async, retry_delay
from .sales_sync import SalesTotalSynchronizer
from .session import ShiftSession, ShiftState
from .shift_cache import CacheKey, ShiftCache
from .watchdog import StuckCheckWatchdog

__version__ = "0.1.0"

__all__ = [
    "ActiveShiftResolver",
    "ApiError",
    "CacheKey",
    "CashReconciliation",
    "ClientConfig",
    "ConfigError",
    "ConflictError",
    "ConnectivityMonitor",
    "ErrorMapper",
    "HttpClient",
    "NoActiveShiftError",
    "NotFoundError",
    "PaymentMethodEntry",
    "PaymentMethodKind",
    "PaymentReconciliationManager",
    "RemoteShiftStore",
    "SalesTotal",
    "SalesTotalSynchronizer",
    "ServerError",
    "Shift",
    "ShiftAlreadyOpenError",
    "ShiftCache",
    "ShiftCoordinator",
    "ShiftLifecycleController",
    "ShiftResolutionError",
    "ShiftSession",
    "ShiftState",
    "ShiftStatus",
    "ShiftStoreClient",
    "ShiftValidationError",
    "StuckCheckWatchdog",
    "TransportError",
    "cash_total",
    "compute_cash_difference",
    "load_config",
    "reconcile",
    "retry_async",
    "retry_delay",
]
