"""Member registry endpoints.

Every query runs through the club-bound TenantScopedStore; a member id
from another club is reported as not found.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from clubhub_api.authz.permissions import Permission
from clubhub_api.authz.pipeline import ClubAccess, club_access
from clubhub_api.authz.requirements import club_endpoint
from clubhub_api.authz.tier import TierFeature
from clubhub_api.schemas import (
    MemberCreateRequest,
    MemberResponse,
    MemberUpdateRequest,
    SepaMandateResponse,
)
from clubhub_api.services.members import MemberService

router = APIRouter(prefix="/v1/clubs/{slug}", tags=["members"])

READ = club_endpoint(permissions=[Permission.MEMBER_READ])
CREATE = club_endpoint(permissions=[Permission.MEMBER_CREATE])
UPDATE = club_endpoint(permissions=[Permission.MEMBER_UPDATE])
DELETE = club_endpoint(permissions=[Permission.MEMBER_DELETE])
# Data-subject erasure stays possible while the club is deactivated
ANONYMIZE = club_endpoint(permissions=[Permission.MEMBER_DELETE], deactivation_exempt=True)
SEPA_MANDATES = club_endpoint(permissions=[Permission.FINANCE_READ], features=[TierFeature.SEPA])


@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    status_filter: Optional[str] = Query(None, alias="status"),
    access: ClubAccess = Depends(club_access(READ)),
):
    return MemberService(access.store).list_members(status=status_filter)


@router.get("/members/stats")
async def member_stats(access: ClubAccess = Depends(club_access(READ))) -> dict[str, int]:
    """Member counts per status."""
    return MemberService(access.store).count_by_status()


@router.post("/members", status_code=status.HTTP_201_CREATED, response_model=MemberResponse)
async def create_member(
    body: MemberCreateRequest,
    access: ClubAccess = Depends(club_access(CREATE)),
):
    return MemberService(access.store).create_member(body.model_dump())


@router.get("/members/{member_id}", response_model=MemberResponse)
async def get_member(member_id: str, access: ClubAccess = Depends(club_access(READ))):
    return MemberService(access.store).get_member(member_id)


@router.patch("/members/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    body: MemberUpdateRequest,
    access: ClubAccess = Depends(club_access(UPDATE)),
):
    return MemberService(access.store).update_member(
        member_id, body.model_dump(exclude_unset=True)
    )


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_member(member_id: str, access: ClubAccess = Depends(club_access(DELETE))) -> None:
    MemberService(access.store).delete_member(member_id)


@router.post("/members/{member_id}/anonymize", response_model=MemberResponse)
async def anonymize_member(member_id: str, access: ClubAccess = Depends(club_access(ANONYMIZE))):
    """Erase a member's personal data (GDPR Art. 17)."""
    return MemberService(access.store).anonymize_member(member_id, access.context.user_id)


@router.get("/sepa/mandates", response_model=list[SepaMandateResponse])
async def list_sepa_mandates(access: ClubAccess = Depends(club_access(SEPA_MANDATES))):
    return [
        {
            "member_id": m.id,
            "member_name": f"{m.first_name} {m.last_name}",
            "mandate_reference": m.sepa_mandate_reference,
        }
        for m in MemberService(access.store).list_sepa_mandates()
    ]
