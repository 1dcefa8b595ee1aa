"""Deactivation gate: a deactivated club accepts reads and exempt writes only."""

from typing import Optional

from sqlalchemy.orm import Session

from clubhub_api.db.models import Club

READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def is_write_method(method: str) -> bool:
    return method.upper() not in READ_METHODS


class DeactivationGate:
    def __init__(self, db: Session):
        self.db = db

    def is_deactivated(self, club_id: str) -> bool:
        deactivated_at = (
            self.db.query(Club.deactivated_at).filter(Club.id == club_id).scalar()
        )
        return deactivated_at is not None

    def may_mutate(
        self,
        club_id: Optional[str],
        is_write: bool,
        is_exempt: bool,
    ) -> bool:
        """Decide whether the request may proceed.

        Reads, exempt operations and platform-level requests (no club)
        always pass without touching the store.
        """
        if club_id is None or not is_write or is_exempt:
            return True
        return not self.is_deactivated(club_id)
