"""
Shared registry handling for obligation schedulers.

Add/update/delete of the obligation record itself is the same for every
obligation type. Deleting an obligation only removes the record: the
transactions it already generated stay in the ledger, and reversing one
of them later is a safe no-op because the lookup fails.
"""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

import structlog
from pydantic import BaseModel

from smart_wallet.ledger import LedgerEngine
from smart_wallet.models.audit import AuditEntryBuilder, AuditTarget
from smart_wallet.models.ledger import AppState, find_by_id, remove_by_id, replace_by_id
from smart_wallet.models.notification import NotificationLevel


ObligationT = TypeVar("ObligationT", bound=BaseModel)


class ObligationScheduler(ABC, Generic[ObligationT]):
    """Base class: registry access, record CRUD and no-op logging."""

    target: AuditTarget

    def __init__(self, ledger: LedgerEngine):
        self._ledger = ledger
        self._logger = structlog.get_logger()

    # Subclasses name their registry and how a record is labelled

    @abstractmethod
    def registry(self, state: AppState) -> list[ObligationT]:
        pass

    def label(self, item: ObligationT) -> str:
        return getattr(item, "name", "")

    def get(self, state: AppState, obligation_id: str) -> Optional[ObligationT]:
        return find_by_id(self.registry(state), obligation_id)

    def _register(self, state: AppState, item: ObligationT, details: Optional[str] = None) -> ObligationT:
        self.registry(state).append(item)
        self._ledger.audit.append(
            state, AuditEntryBuilder.record_added(self.target, self.label(item), details)
        )
        self._ledger.notify("Added", f"{self.label(item)} was registered.")
        return item

    def update(self, state: AppState, item: ObligationT) -> Optional[ObligationT]:
        """Replace a record by id. No-op if the id is unknown."""
        if not replace_by_id(self.registry(state), item):
            self._not_found(getattr(item, "id", None))
            return None
        self._ledger.audit.append(
            state, AuditEntryBuilder.record_updated(self.target, self.label(item))
        )
        self._ledger.notify(
            "Updated", f"Changes to {self.label(item)} were saved.", NotificationLevel.INFO
        )
        return item

    def delete(self, state: AppState, obligation_id: str) -> Optional[ObligationT]:
        """Remove a record. Posted transactions are left untouched."""
        item = remove_by_id(self.registry(state), obligation_id)
        if item is None:
            self._not_found(obligation_id)
            return None
        self._ledger.audit.append(
            state, AuditEntryBuilder.record_deleted(self.target, self.label(item))
        )
        self._ledger.notify(
            "Deleted", f"{self.label(item)} was removed.", NotificationLevel.WARNING
        )
        return item

    def _not_found(self, obligation_id: Optional[str]) -> None:
        self._logger.debug(
            "obligation_not_found",
            obligation_type=self.target.value,
            obligation_id=obligation_id,
        )

    def _skip(self, obligation_id: str, reason: str) -> None:
        self._logger.debug(
            "precondition_not_met",
            obligation_type=self.target.value,
            obligation_id=obligation_id,
            reason=reason,
        )
