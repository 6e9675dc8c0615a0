"""
Persistence Gateway

Sits between the in-memory wallet and a snapshot backend:
- Loading never fails: missing or unreadable data yields a fresh wallet
- Saving never raises: failures are logged and reported as False
- Import validates the minimum every snapshot must carry
- Export produces the snapshot document as-is

Writes are debounced. Each mutation cancels the pending write and
schedules a new one after a quiet period, so a burst of mutations
becomes a single write. The durable copy may lag the in-memory one by
at most that quiet period.
"""

import asyncio
import json
import threading
from datetime import date
from typing import Optional, Union

import structlog
from pydantic import ValidationError

from smart_wallet.models.defaults import default_state
from smart_wallet.models.ledger import AppState
from smart_wallet.services.storage.interface import (
    InvalidImportFormatError,
    SnapshotStorageInterface,
)


class PersistenceGateway:
    """Load, save, import and export whole-wallet snapshots."""

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        backup_prefix: str = "smart_wallet_backup",
    ):
        self._storage = storage
        self._backup_prefix = backup_prefix
        self._logger = structlog.get_logger()

    @property
    def storage(self) -> SnapshotStorageInterface:
        return self._storage

    async def load_state(self) -> AppState:
        """Stored state, or the default wallet if none can be read."""
        try:
            state = await self._storage.load_snapshot()
        except Exception as e:
            self._logger.error("snapshot_load_failed", error=str(e))
            return default_state()

        if state is None:
            return default_state()
        return state

    async def save_state(self, state: AppState) -> bool:
        """Write the snapshot. Returns False instead of raising on failure."""
        try:
            saved = await self._storage.save_snapshot(state)
        except Exception as e:
            self._logger.error("snapshot_save_failed", error=str(e))
            return False

        self._logger.debug(
            "snapshot_saved",
            transactions=len(state.transactions),
            cash_balance=str(state.cash_balance),
        )
        return saved

    def export_snapshot(self, state: AppState) -> str:
        """The snapshot document, ready to be offered as a download."""
        return state.model_dump_json(indent=2)

    def export_filename(self, today: Optional[date] = None) -> str:
        today = today or date.today()
        return f"{self._backup_prefix}_{today.isoformat()}.json"

    def parse_import(self, raw: Union[str, bytes]) -> AppState:
        """
        Validate an import document and build a state from it.

        Raises:
            InvalidImportFormatError: unreadable JSON, missing transaction
                list or cash balance, or data not matching the schema
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidImportFormatError(f"Import is not valid JSON: {e}")

        if not isinstance(data, dict):
            raise InvalidImportFormatError("Import must be a JSON object")
        if not isinstance(data.get("transactions"), list):
            raise InvalidImportFormatError("Import has no transaction list")
        if data.get("cash_balance") is None:
            raise InvalidImportFormatError("Import has no cash balance")

        try:
            return AppState.model_validate(data)
        except ValidationError as e:
            raise InvalidImportFormatError(f"Import does not match the wallet schema: {e}")


class DebouncedSnapshotWriter:
    """
    Coalesces bursts of mutations into one snapshot write.

    Inside a running event loop the pending write is an asyncio task;
    synchronous callers get a `threading.Timer` instead. Either way a
    new schedule() restarts the quiet period. A write that has already
    started is never cancelled; only writes still waiting out the quiet
    period are superseded.
    """

    def __init__(self, gateway: PersistenceGateway, delay_seconds: float = 1.0):
        self._gateway = gateway
        self._delay = delay_seconds
        self._pending: Optional[asyncio.Task] = None
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self.write_count = 0

    @property
    def has_pending_write(self) -> bool:
        if self._pending is not None and not self._pending.done():
            return True
        timer = self._timer
        return timer is not None and timer.is_alive()

    def schedule(self, state: AppState) -> None:
        """(Re)start the quiet period for a write of this state."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        self.cancel()
        if loop is not None:
            self._pending = loop.create_task(self._write_later(state))
            return

        timer = threading.Timer(self._delay, self._write_from_timer, args=(state,))
        timer.daemon = True
        with self._lock:
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        """Drop whichever write is still waiting out its quiet period."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    async def flush(self, state: AppState) -> bool:
        """Drop any pending write and save immediately."""
        self.cancel()
        return await self._write(state)

    async def _write_later(self, state: AppState) -> None:
        await asyncio.sleep(self._delay)
        # Past the quiet period: from here on a new schedule() must not cancel us
        if self._pending is asyncio.current_task():
            self._pending = None
        await self._write(state)

    def _write_from_timer(self, state: AppState) -> None:
        with self._lock:
            if self._timer is threading.current_thread():
                self._timer = None
        asyncio.run(self._write(state))

    async def _write(self, state: AppState) -> bool:
        saved = await self._gateway.save_state(state)
        self.write_count += 1
        return saved
