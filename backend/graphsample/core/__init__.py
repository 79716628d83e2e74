from .errors import (
    AuthError,
    DirectoryError,
    FilterError,
    NotFoundError,
    Stage,
    UpstreamError,
)

__all__ = [
    "AuthError",
    "DirectoryError",
    "FilterError",
    "NotFoundError",
    "Stage",
    "UpstreamError",
]
