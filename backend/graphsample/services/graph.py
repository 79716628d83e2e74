from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import AppConfig
from ..core.errors import AuthError, FilterError, NotFoundError, Stage, UpstreamError
from ..models import FilterCriteria, GroupRecord, UserRecord
from .filters import build_filter_expression
from .token_provider import BearerTokenAuth, TokenProvider

logger = logging.getLogger(__name__)

USER_SELECT = "id,givenName,surname,mail,businessPhones,mobilePhone,userPrincipalName"
GROUP_SELECT = "id,displayName"


class DirectoryClient:
    """
    Thin async wrapper over the Microsoft Graph endpoints used by this service.

    Every request carries an app-only bearer token.  Failures are not retried;
    they are translated into :mod:`graphsample.core.errors` and propagated.
    """

    def __init__(
        self,
        config: AppConfig,
        token_provider: TokenProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider
        self._client = httpx.AsyncClient(
            base_url=config.graph.base,
            timeout=config.graph.timeout_seconds,
            auth=BearerTokenAuth(token_provider, config.azure.graph_scopes),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def list_users(self, criteria: FilterCriteria | None = None) -> AsyncIterator[UserRecord]:
        criteria = criteria or FilterCriteria()
        params: Dict[str, Any] = {
            "$select": USER_SELECT,
            "$top": self._config.graph.page_size,
        }
        expression = build_filter_expression(criteria)
        if expression:
            params["$filter"] = expression

        next_url: Optional[str] = "/users"
        while next_url:
            payload = await self._get_json(
                next_url,
                Stage.USER_LISTING,
                params=params,
                filtered=bool(expression),
            )
            for entry in self._values(payload, Stage.USER_LISTING):
                yield UserRecord.from_graph(entry)
            next_url = self._next_link(payload, Stage.USER_LISTING)
            # The next link already embeds the original query string.
            params = None

    async def list_group_ids_for_user(self, user_id: str, limit: int | None = None) -> List[str]:
        url = f"/users/{quote(user_id, safe='@')}/getMemberGroups"
        body = {"securityEnabledOnly": self._config.graph.security_enabled_only}
        response = await self._send("POST", url, Stage.GROUP_MEMBERSHIP, json=body)
        payload = self._decode(response, Stage.GROUP_MEMBERSHIP)

        group_ids: List[str] = []
        pages = 1
        while True:
            for value in self._values(payload, Stage.GROUP_MEMBERSHIP):
                if not isinstance(value, str):
                    raise UpstreamError(
                        "getMemberGroups returned a non-string group id",
                        Stage.GROUP_MEMBERSHIP,
                    )
                group_ids.append(value)
                if limit is not None and len(group_ids) >= limit:
                    logger.debug("Stopped collecting groups for %s at %d", user_id, limit)
                    return group_ids
            next_url = self._next_link(payload, Stage.GROUP_MEMBERSHIP)
            if not next_url:
                break
            pages += 1
            payload = await self._get_json(next_url, Stage.GROUP_MEMBERSHIP)

        logger.debug("Collected %d group ids for %s across %d page(s)", len(group_ids), user_id, pages)
        return group_ids

    async def get_group(self, group_id: str) -> GroupRecord:
        payload = await self._get_json(
            f"/groups/{quote(group_id, safe='')}",
            Stage.GROUP_RESOLUTION,
            params={"$select": GROUP_SELECT},
        )
        if "id" not in payload:
            raise UpstreamError("Group payload is missing an id", Stage.GROUP_RESOLUTION)
        return GroupRecord.from_graph(payload)

    async def close(self) -> None:
        await self._client.aclose()

    def _next_link(self, payload: Dict[str, Any], stage: Stage) -> Optional[str]:
        next_url = payload.get("@odata.nextLink")
        if not next_url:
            return None
        # Continuation requests carry the bearer token, so they must stay on the Graph host.
        base = self._config.graph.base
        if not isinstance(next_url, str) or not (next_url == base or next_url.startswith(base + "/")):
            logger.warning("Refusing to follow nextLink outside %s: %r", base, next_url)
            raise UpstreamError("Directory page links outside the directory service", stage)
        return next_url

    async def _get_json(
        self,
        url: str,
        stage: Stage,
        params: Optional[Dict[str, Any]] = None,
        filtered: bool = False,
    ) -> Dict[str, Any]:
        response = await self._send("GET", url, stage, params=params, filtered=filtered)
        return self._decode(response, stage)

    async def _send(
        self,
        method: str,
        url: str,
        stage: Stage,
        filtered: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Graph request %s %s failed: %s", method, url, exc)
            raise UpstreamError(f"Directory service unreachable: {exc}", stage) from exc

        if response.status_code >= 400:
            self._raise_for_status(response, stage, filtered)
        return response

    def _raise_for_status(self, response: httpx.Response, stage: Stage, filtered: bool) -> None:
        status_code = response.status_code
        message = self._error_message(response)
        logger.warning(
            "Graph call failed during %s: %s %s", stage.value, status_code, message
        )
        if status_code in (401, 403):
            if status_code == 401:
                self._token_provider.invalidate(self._config.azure.graph_scopes)
            raise AuthError(message, stage=stage, status_code=status_code)
        if status_code == 404:
            raise NotFoundError(message, stage, status_code)
        if status_code == 400 and filtered:
            raise FilterError(message, stage=stage, status_code=status_code)
        raise UpstreamError(message, stage, status_code)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            error = response.json().get("error", {})
        except ValueError:
            error = {}
        if isinstance(error, dict) and error.get("message"):
            return f"{error.get('code', 'Error')}: {error['message']}"
        return f"Directory service returned HTTP {response.status_code}"

    @staticmethod
    def _decode(response: httpx.Response, stage: Stage) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError("Directory service returned malformed JSON", stage) from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Directory service returned an unexpected payload", stage)
        return payload

    @staticmethod
    def _values(payload: Dict[str, Any], stage: Stage) -> List[Any]:
        values = payload.get("value", [])
        if not isinstance(values, list):
            raise UpstreamError("Directory page is missing its value list", stage)
        return values
