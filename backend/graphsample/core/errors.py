"""
Error taxonomy for directory lookups.

Every error names the stage of the request that failed so callers receive a
structured body instead of an opaque 500.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Stage(str, Enum):
    TOKEN_ACQUISITION = "token_acquisition"
    USER_LISTING = "user_listing"
    GROUP_MEMBERSHIP = "group_membership"
    GROUP_RESOLUTION = "group_resolution"


class DirectoryError(Exception):
    code = "directory_error"

    def __init__(
        self,
        message: str,
        stage: Stage,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "code": self.code,
            "message": self.message,
        }


class AuthError(DirectoryError):
    code = "authentication_failed"

    def __init__(
        self,
        message: str,
        stage: Stage = Stage.TOKEN_ACQUISITION,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, stage, status_code)


class NotFoundError(DirectoryError):
    code = "not_found"


class UpstreamError(DirectoryError):
    code = "upstream_failure"

    @property
    def is_unavailable(self) -> bool:
        return self.status_code in (429, 503)


class FilterError(DirectoryError):
    code = "invalid_filter"

    def __init__(
        self,
        message: str,
        stage: Stage = Stage.USER_LISTING,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, stage, status_code)
