from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class UserRecord:
    id: str
    given_name: Optional[str] = None
    surname: Optional[str] = None
    mail: Optional[str] = None
    business_phones: Tuple[str, ...] = ()
    mobile_phone: Optional[str] = None
    user_principal_name: Optional[str] = None

    @classmethod
    def from_graph(cls, payload: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=str(payload["id"]),
            given_name=payload.get("givenName"),
            surname=payload.get("surname"),
            mail=payload.get("mail"),
            business_phones=tuple(payload.get("businessPhones") or ()),
            mobile_phone=payload.get("mobilePhone"),
            user_principal_name=payload.get("userPrincipalName"),
        )


@dataclass(frozen=True)
class GroupRecord:
    id: str
    display_name: Optional[str]

    @classmethod
    def from_graph(cls, payload: Dict[str, Any]) -> "GroupRecord":
        return cls(id=str(payload["id"]), display_name=payload.get("displayName"))


@dataclass(frozen=True)
class MembershipResult:
    user: UserRecord
    groups: Tuple[GroupRecord, ...] = ()
    truncated: bool = False


@dataclass(frozen=True)
class FilterCriteria:
    user_principal_name: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None

    def predicates(self) -> Tuple[Tuple[str, str], ...]:
        """Non-blank ``(attribute, prefix)`` pairs in the fixed filter order."""
        candidates = (
            ("userPrincipalName", self.user_principal_name),
            ("givenName", self.given_name),
            ("surname", self.surname),
        )
        return tuple(
            (attribute, value)
            for attribute, value in candidates
            if value is not None and value.strip()
        )

    @property
    def is_empty(self) -> bool:
        return not self.predicates()


@dataclass(frozen=True)
class AccessToken:
    token: str = field(repr=False)
    expires_at: float
    token_type: str = "Bearer"

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.token}"
