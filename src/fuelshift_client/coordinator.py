from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from .clients.shift_store_client import RemoteShiftStore, ShiftStoreClient
from .config import ClientConfig
from .connectivity import ConnectivityMonitor
from .http_client import HttpClient
from .lifecycle import ShiftLifecycleController
from .logger import get_logger, log_event
from .models import CashReconciliation, PaymentMethodEntry, Shift
from .payments import PaymentReconciliationManager, compute_cash_difference, reconcile
from .resolver import ActiveShiftResolver
from .sales_sync import SalesTotalSynchronizer
from .session import Listener, ShiftSession
from .shift_cache import ShiftCache
from .watchdog import StuckCheckWatchdog

logger = get_logger(__name__)


class ShiftCoordinator:
    """Facade the presentation layer talks to.

    Use as ``async with`` so the watchdog and the sales poller are torn down
    together with the coordinator.
    """

    def __init__(
        self,
        store: RemoteShiftStore,
        *,
        identity_id: str | None = None,
        config: ClientConfig | None = None,
        cache: ShiftCache | None = None,
        connectivity: ConnectivityMonitor | None = None,
        session: ShiftSession | None = None,
        http: HttpClient | None = None,
    ) -> None:
        config = config or ClientConfig(env_name="dev", api_base_url="")
        self.config = config
        self.store = store
        self.session = session or ShiftSession(identity_id=identity_id)
        if identity_id and not self.session.identity_id:
            self.session.identity_id = identity_id
        self.cache = cache or ShiftCache(base_dir=config.cache_dir)
        self.connectivity = connectivity or ConnectivityMonitor()
        self._http = http

        self.resolver = ActiveShiftResolver(
            store=store,
            session=self.session,
            cache=self.cache,
            connectivity=self.connectivity,
            max_attempts=config.resolve_attempts,
            backoff_seconds=config.retry_backoff_seconds,
            fresh_seconds=config.active_shift_fresh_seconds,
        )
        self.lifecycle = ShiftLifecycleController(
            store=store,
            session=self.session,
            cache=self.cache,
            success_reset_seconds=config.success_reset_seconds,
        )
        self.payments = PaymentReconciliationManager(store=store, session=self.session)
        self.sales_sync = SalesTotalSynchronizer(
            store=store,
            session=self.session,
            interval_seconds=config.sales_refresh_seconds,
        )
        self.watchdog = StuckCheckWatchdog(
            session=self.session,
            interval_seconds=config.watchdog_interval_seconds,
            threshold_seconds=config.stuck_check_seconds,
        )
        self._background: set[asyncio.Task] = set()
        self._unsubscribe = self.session.subscribe(self._on_session_change)

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        identity_id: str | None = None,
        *,
        location_id: str | None = None,
        connectivity: ConnectivityMonitor | None = None,
    ) -> "ShiftCoordinator":
        http = HttpClient(config)
        store = ShiftStoreClient(http=http, access_token=config.access_token, location_id=location_id)
        return cls(
            store,
            identity_id=identity_id,
            config=config,
            connectivity=connectivity,
            http=http,
        )

    async def __aenter__(self) -> "ShiftCoordinator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def start(self, *, check: bool = True) -> None:
        self.watchdog.start()
        if self.session.active_shift is not None:
            self.sales_sync.start(self.session.active_shift.id)
        if check and self.session.identity_id:
            await self.check_active_shift()

    async def aclose(self) -> None:
        self._unsubscribe()
        self.lifecycle.cancel_pending()
        await self.watchdog.stop()
        await self.sales_sync.stop()
        for task in list(self._background):
            task.cancel()
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
        self._background.clear()
        if self._http is not None:
            await self._http.aclose()

    @property
    def active_shift(self) -> Shift | None:
        return self.session.active_shift

    @property
    def is_checking_shift(self) -> bool:
        return self.session.is_checking_shift

    @property
    def is_loading(self) -> bool:
        return self.session.is_loading

    @property
    def success(self) -> bool:
        return self.session.success

    @property
    def shift_payment_methods(self) -> list[PaymentMethodEntry]:
        return self.session.shift_payment_methods

    def subscribe(self, listener: Listener):
        return self.session.subscribe(listener)

    async def check_active_shift(self, identity_id: str | None = None, skip_cache: bool = False) -> Shift | None:
        return await self.resolver.resolve(identity_id, force_refresh=skip_cache)

    async def begin_shift(self, opening_cash: Any, identity_ids: Sequence[str] | None = None) -> Shift:
        return await self.lifecycle.begin(opening_cash, identity_ids)

    async def end_shift(
        self,
        closing_cash: Any,
        payment_entries: Iterable[PaymentMethodEntry | Mapping[str, Any]] | None = None,
    ) -> Shift | None:
        return await self.lifecycle.end(closing_cash, payment_entries)

    async def add_payment_methods(
        self, entries: Iterable[PaymentMethodEntry | Mapping[str, Any]]
    ) -> list[PaymentMethodEntry]:
        return await self.payments.add_payment_methods(entries)

    async def delete_payment_method(self, payment_method_id: str | None = None) -> list[PaymentMethodEntry]:
        """Remove the payment methods of the active shift.

        The store only deletes whole sets, so ``payment_method_id`` does not
        narrow the removal.
        """
        if payment_method_id:
            log_event(logger, "coordinator", "delete_payment_method", "full_set", payment_method_id=payment_method_id)
        return await self.payments.remove_payment_methods()

    async def list_payment_methods(self, shift_id: str) -> list[PaymentMethodEntry]:
        return await self.payments.list_payment_methods(shift_id)

    def cash_difference(self, shift: Shift) -> Decimal:
        return compute_cash_difference(shift)

    def reconciliation(self, shift: Shift, entries: Iterable[PaymentMethodEntry] | None = None) -> CashReconciliation:
        return reconcile(shift, self.session.shift_payment_methods if entries is None else entries)

    def _on_session_change(self, changed: str, session: ShiftSession) -> None:
        if changed != "active_shift":
            return
        shift = session.active_shift
        if shift is None:
            self.sales_sync.cancel()
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        if shift.is_open:
            self.sales_sync.start(shift.id)
        self._spawn(self.payments.list_payment_methods(shift.id))

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
