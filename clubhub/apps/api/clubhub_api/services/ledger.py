"""Ledger accounts. All access goes through a club-bound TenantScopedStore."""

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import IntegrityError

from clubhub_api.db.models import LedgerAccount
from clubhub_api.db.tenant_scope import TenantScopedStore
from clubhub_api.errors import DuplicateResource, ResourceNotFound

ACCOUNT_TYPES = ("ASSET", "LIABILITY", "INCOME", "EXPENSE")


class LedgerService:
    def __init__(self, store: TenantScopedStore):
        self.store = store

    @contextmanager
    def _unique_code(self) -> Iterator[None]:
        try:
            yield
            self.store.session.commit()
        except IntegrityError:
            self.store.session.rollback()
            raise DuplicateResource("An account with this code already exists.")

    def list_accounts(self, active_only: bool = False) -> list[LedgerAccount]:
        where = {"is_active": True} if active_only else None
        return self.store.find_many(LedgerAccount, where=where, order_by=["code"])

    def get_account(self, account_id: str) -> LedgerAccount:
        account = self.store.find_unique(LedgerAccount, account_id)
        if account is None:
            raise ResourceNotFound("Ledger account not found.")
        return account

    def create_account(self, data: dict[str, Any]) -> LedgerAccount:
        with self._unique_code():
            account = self.store.create(LedgerAccount, data)
        return account

    def update_account(self, account_id: str, changes: dict[str, Any]) -> LedgerAccount:
        account = self.store.update(LedgerAccount, {"id": account_id}, changes)
        if account is None:
            raise ResourceNotFound("Ledger account not found.")
        self.store.session.commit()
        return account

    def delete_account(self, account_id: str) -> None:
        if self.store.delete(LedgerAccount, {"id": account_id}) is None:
            raise ResourceNotFound("Ledger account not found.")
        self.store.session.commit()

    def report_summary(self) -> dict[str, Any]:
        """Balance totals per account type over active accounts."""
        totals = {}
        for account_type in ACCOUNT_TYPES:
            total = self.store.aggregate(
                LedgerAccount,
                "balance_cents",
                "sum",
                where={"account_type": account_type, "is_active": True},
            )
            totals[account_type] = int(total or 0)
        return {
            "totals_cents": totals,
            "account_count": self.store.count(LedgerAccount, where={"is_active": True}),
        }
