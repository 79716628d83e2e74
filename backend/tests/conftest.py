import math
from typing import Dict, List, Optional
from urllib.parse import unquote

import httpx
import pytest

from graphsample.config import AppConfig, AzureConfig, GraphConfig, MembershipConfig
from graphsample.container import AppContainer
from graphsample.models import AccessToken

GRAPH = "https://graph.microsoft.com/v1.0"
TEST_TOKEN = "test-token"


class FakeTokenProvider:
    def __init__(self):
        self.calls = 0
        self.invalidated = []

    async def acquire_token(self, scopes):
        self.calls += 1
        return AccessToken(token=TEST_TOKEN, expires_at=math.inf)

    def invalidate(self, scopes):
        self.invalidated.append(list(scopes))


class FakeGraph:
    """In-memory stand-in for the Graph endpoints the service calls."""

    def __init__(
        self,
        users: Optional[List[dict]] = None,
        memberships: Optional[Dict[str, List[str]]] = None,
        groups: Optional[Dict[str, Optional[str]]] = None,
        users_page_size: int = 100,
        groups_page_size: int = 100,
    ):
        self.users = users or []
        self.memberships = memberships or {}
        self.groups = groups or {}
        self.users_page_size = users_page_size
        self.groups_page_size = groups_page_size
        self.group_failures: Dict[str, int] = {}
        self.user_listing_status: Optional[int] = None
        self.requests: List[httpx.Request] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def user_filters(self) -> List[Optional[str]]:
        return [
            request.url.params.get("$filter")
            for request in self.requests
            if request.method == "GET" and unquote(request.url.path) == "/v1.0/users"
        ]

    def group_lookups(self) -> List[str]:
        return [
            unquote(request.url.path).rsplit("/", 1)[-1]
            for request in self.requests
            if unquote(request.url.path).startswith("/v1.0/groups/")
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.headers["Authorization"] == f"Bearer {TEST_TOKEN}"
        path = unquote(request.url.path)
        skip = int(request.url.params.get("$skiptoken", "0"))
        parts = path.split("/")

        if path == "/v1.0/users":
            if self.user_listing_status:
                return _error(self.user_listing_status)
            return self._page(self.users, skip, self.users_page_size, f"{GRAPH}/users")

        if len(parts) == 5 and parts[2] == "users" and parts[4] == "getMemberGroups":
            user_id = parts[3]
            if user_id not in self.memberships:
                return _error(404, "Request_ResourceNotFound")
            next_base = f"{GRAPH}/users/{user_id}/getMemberGroups"
            return self._page(self.memberships[user_id], skip, self.groups_page_size, next_base)

        if len(parts) == 4 and parts[2] == "groups":
            group_id = parts[3]
            if group_id in self.group_failures:
                return _error(self.group_failures[group_id])
            if group_id not in self.groups:
                return _error(404, "Request_ResourceNotFound")
            return httpx.Response(200, json={"id": group_id, "displayName": self.groups[group_id]})

        return _error(404)

    @staticmethod
    def _page(items, skip, size, next_base) -> httpx.Response:
        payload = {"value": items[skip : skip + size]}
        if skip + size < len(items):
            payload["@odata.nextLink"] = f"{next_base}?$skiptoken={skip + size}"
        return httpx.Response(200, json=payload)


def _error(status_code: int, code: str = "Error") -> httpx.Response:
    return httpx.Response(
        status_code, json={"error": {"code": code, "message": f"fake failure {status_code}"}}
    )


def make_config(**membership) -> AppConfig:
    return AppConfig(
        azure=AzureConfig(tenant_id="tenant", client_id="client", client_secret="secret"),
        graph=GraphConfig(),
        membership=MembershipConfig(**membership),
    )


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def token_provider():
    return FakeTokenProvider()


@pytest.fixture
def graph_factory():
    return FakeGraph


@pytest.fixture
def build_container(token_provider):
    def _build(graph: FakeGraph, config: Optional[AppConfig] = None) -> AppContainer:
        return AppContainer.build(
            config or make_config(),
            token_provider=token_provider,
            transport=graph.transport,
        )

    return _build


@pytest.fixture
def config_factory():
    return make_config
