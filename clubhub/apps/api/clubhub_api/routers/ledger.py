"""Ledger account endpoints (finance:* permissions)."""

from fastapi import APIRouter, Depends, status

from clubhub_api.authz.permissions import Permission
from clubhub_api.authz.pipeline import ClubAccess, club_access
from clubhub_api.authz.requirements import club_endpoint
from clubhub_api.authz.tier import TierFeature
from clubhub_api.schemas import (
    LedgerAccountCreateRequest,
    LedgerAccountResponse,
    LedgerAccountUpdateRequest,
    LedgerReportSummary,
)
from clubhub_api.services.ledger import LedgerService

router = APIRouter(prefix="/v1/clubs/{slug}/ledger", tags=["ledger"])

READ = club_endpoint(permissions=[Permission.FINANCE_READ])
CREATE = club_endpoint(permissions=[Permission.FINANCE_CREATE])
UPDATE = club_endpoint(permissions=[Permission.FINANCE_UPDATE])
DELETE = club_endpoint(permissions=[Permission.FINANCE_DELETE])
REPORTS = club_endpoint(permissions=[Permission.FINANCE_READ], features=[TierFeature.REPORTS])


@router.get("/accounts", response_model=list[LedgerAccountResponse])
async def list_accounts(active_only: bool = False, access: ClubAccess = Depends(club_access(READ))):
    return LedgerService(access.store).list_accounts(active_only=active_only)


@router.post("/accounts", status_code=status.HTTP_201_CREATED, response_model=LedgerAccountResponse)
async def create_account(
    body: LedgerAccountCreateRequest,
    access: ClubAccess = Depends(club_access(CREATE)),
):
    return LedgerService(access.store).create_account(body.model_dump())


@router.get("/accounts/{account_id}", response_model=LedgerAccountResponse)
async def get_account(account_id: str, access: ClubAccess = Depends(club_access(READ))):
    return LedgerService(access.store).get_account(account_id)


@router.patch("/accounts/{account_id}", response_model=LedgerAccountResponse)
async def update_account(
    account_id: str,
    body: LedgerAccountUpdateRequest,
    access: ClubAccess = Depends(club_access(UPDATE)),
):
    return LedgerService(access.store).update_account(
        account_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_account(account_id: str, access: ClubAccess = Depends(club_access(DELETE))) -> None:
    LedgerService(access.store).delete_account(account_id)


@router.get("/reports/summary", response_model=LedgerReportSummary)
async def report_summary(access: ClubAccess = Depends(club_access(REPORTS))):
    """Balance totals per account type. Requires the reports tier feature."""
    return LedgerService(access.store).report_summary()
