from .filters import build_filter_expression
from .graph import DirectoryClient
from .membership import MembershipService
from .token_provider import BearerTokenAuth, TokenProvider

__all__ = [
    "build_filter_expression",
    "DirectoryClient",
    "MembershipService",
    "BearerTokenAuth",
    "TokenProvider",
]
