from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from .. import dependencies
from ..config import AppConfig
from ..models import FilterCriteria, UserRecord
from ..schemas.membership import (
    ErrorResponse,
    GroupMembershipInformation,
    UserGroupMemberships,
)
from ..services.membership import MembershipService

router = APIRouter(prefix="/GroupMembership", tags=["group-membership"])

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    status.HTTP_502_BAD_GATEWAY: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}

MEMBERSHIP_RESPONSES = {
    status.HTTP_200_OK: {
        "model": Union[GroupMembershipInformation, List[UserGroupMemberships]],
        "description": "The default user's memberships, or one item per matching user "
        "when any filter parameter is given.",
    },
    **ERROR_RESPONSES,
}


async def _memberships_for_filter(
    service: MembershipService, criteria: FilterCriteria
) -> List[UserGroupMemberships]:
    results = await service.resolve_memberships_for_filter(criteria)
    return [UserGroupMemberships.from_result(result) for result in results]


@router.get("", responses=MEMBERSHIP_RESPONSES)
async def get_group_memberships(
    user_principal_name: Optional[str] = Query(default=None, alias="userPrincipalName"),
    given_name: Optional[str] = Query(default=None, alias="givenName"),
    surname: Optional[str] = None,
    config: AppConfig = Depends(dependencies.get_config),
    service: MembershipService = Depends(dependencies.get_membership_service),
) -> JSONResponse:
    """
    Without filter parameters, report the memberships of the configured default
    user.  With any of them present, report every matching user.
    """
    if user_principal_name is None and given_name is None and surname is None:
        # TODO: take the user from the caller's session once authentication is wired in.
        user = UserRecord(id=config.membership.default_user_id)
        result = await service.resolve_memberships(user)
        payload = GroupMembershipInformation.from_result(result)
        return JSONResponse(content=payload.model_dump(by_alias=True))

    criteria = FilterCriteria(
        user_principal_name=user_principal_name, given_name=given_name, surname=surname
    )
    items = await _memberships_for_filter(service, criteria)
    return JSONResponse(content=[item.model_dump(by_alias=True) for item in items])


@router.get(
    "/Users",
    response_model=List[UserGroupMemberships],
    responses=ERROR_RESPONSES,
)
async def list_user_group_memberships(
    user_principal_name: Optional[str] = Query(default=None, alias="userPrincipalName"),
    given_name: Optional[str] = Query(default=None, alias="givenName"),
    surname: Optional[str] = None,
    service: MembershipService = Depends(dependencies.get_membership_service),
) -> List[UserGroupMemberships]:
    criteria = FilterCriteria(
        user_principal_name=user_principal_name, given_name=given_name, surname=surname
    )
    return await _memberships_for_filter(service, criteria)
