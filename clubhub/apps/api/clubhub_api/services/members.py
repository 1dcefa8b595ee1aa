"""Member registry. All access goes through a club-bound TenantScopedStore."""

import logging
from datetime import datetime, timezone
from typing import Any

from clubhub_api.db.models import Member
from clubhub_api.db.tenant_scope import TenantScopedStore
from clubhub_api.errors import ResourceNotFound

logger = logging.getLogger(__name__)

ANONYMIZED_NAME = "Anonymized"


class MemberService:
    def __init__(self, store: TenantScopedStore):
        self.store = store

    def _commit(self) -> None:
        self.store.session.commit()

    def list_members(self, status: str | None = None) -> list[Member]:
        where = {"status": status} if status else None
        return self.store.find_many(Member, where=where, order_by=["last_name", "first_name"])

    def get_member(self, member_id: str) -> Member:
        member = self.store.find_unique(Member, member_id)
        if member is None:
            raise ResourceNotFound("Member not found.")
        return member

    def create_member(self, data: dict[str, Any]) -> Member:
        member = self.store.create(Member, data)
        self._commit()
        return member

    def update_member(self, member_id: str, changes: dict[str, Any]) -> Member:
        member = self.store.update(Member, {"id": member_id}, changes)
        if member is None:
            raise ResourceNotFound("Member not found.")
        self._commit()
        return member

    def delete_member(self, member_id: str) -> None:
        if self.store.delete(Member, {"id": member_id}) is None:
            raise ResourceNotFound("Member not found.")
        self._commit()

    def count_by_status(self) -> dict[str, int]:
        return self.store.group_by(Member, "status")

    def list_sepa_mandates(self) -> list[Member]:
        """Members with a SEPA mandate reference on file."""
        members = self.store.find_many(Member, order_by=["last_name", "first_name"])
        return [m for m in members if m.sepa_mandate_reference]

    def anonymize_member(self, member_id: str, actor_user_id: str) -> Member:
        """Erase personal data, keeping the record for bookkeeping."""
        member = self.store.update(
            Member,
            {"id": member_id},
            {
                "first_name": ANONYMIZED_NAME,
                "last_name": ANONYMIZED_NAME,
                "email": None,
                "member_number": None,
                "sepa_mandate_reference": None,
                "status": "LEFT",
                "anonymized_at": datetime.now(timezone.utc),
                "anonymized_by": actor_user_id,
            },
        )
        if member is None:
            raise ResourceNotFound("Member not found.")
        self._commit()

        logger.info(
            "Member anonymized",
            extra={
                "event": "member.anonymized",
                "member_id": member_id,
                "actor_user_id": actor_user_id,
            },
        )
        return member
