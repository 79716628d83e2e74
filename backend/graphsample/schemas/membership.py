from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SerializerFunctionWrapHandler, model_serializer

from ..models import GroupRecord, MembershipResult


class _PascalModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class _MembershipPayload(_PascalModel):
    """Response item whose `Truncated` key appears only when memberships were capped."""

    @model_serializer(mode="wrap")
    def _drop_untruncated(self, handler: SerializerFunctionWrapHandler):
        data = handler(self)
        if self.truncated is None:
            data.pop("Truncated", None)
            data.pop("truncated", None)
        return data


class GroupInfo(_PascalModel):
    group_id: str = Field(alias="GroupId")
    display_name: Optional[str] = Field(default=None, alias="DisplayName")

    @classmethod
    def from_record(cls, record: GroupRecord) -> "GroupInfo":
        return cls(group_id=record.id, display_name=record.display_name)


class GroupMembershipInformation(_MembershipPayload):
    user_id: str = Field(alias="UserId")
    group_memberships: List[GroupInfo] = Field(default_factory=list, alias="GroupMemberships")
    truncated: Optional[bool] = Field(default=None, alias="Truncated")

    @classmethod
    def from_result(cls, result: MembershipResult) -> "GroupMembershipInformation":
        return cls(
            user_id=result.user.id,
            group_memberships=[GroupInfo.from_record(group) for group in result.groups],
            truncated=True if result.truncated else None,
        )


class UserGroupMemberships(_MembershipPayload):
    id: str = Field(alias="Id")
    given_name: Optional[str] = Field(default=None, alias="GivenName")
    surname: Optional[str] = Field(default=None, alias="Surname")
    business_phones: List[str] = Field(default_factory=list, alias="BusinessPhones")
    mobile_phone: Optional[str] = Field(default=None, alias="MobilePhone")
    mail: Optional[str] = Field(default=None, alias="Mail")
    group_memberships: List[GroupInfo] = Field(default_factory=list, alias="GroupMemberships")
    truncated: Optional[bool] = Field(default=None, alias="Truncated")

    @classmethod
    def from_result(cls, result: MembershipResult) -> "UserGroupMemberships":
        user = result.user
        return cls(
            id=user.id,
            given_name=user.given_name,
            surname=user.surname,
            business_phones=list(user.business_phones),
            mobile_phone=user.mobile_phone,
            mail=user.mail,
            group_memberships=[GroupInfo.from_record(group) for group in result.groups],
            truncated=True if result.truncated else None,
        )


class ErrorDetail(BaseModel):
    stage: str
    code: str
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
