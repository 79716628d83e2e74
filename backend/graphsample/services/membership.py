from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, List, Sequence, TypeVar

from ..config import MembershipConfig
from ..models import FilterCriteria, GroupRecord, MembershipResult, UserRecord
from .graph import DirectoryClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _gather_all_or_nothing(aws: Sequence[Awaitable[T]]) -> List[T]:
    """
    Await ``aws`` concurrently and return results in input order.

    The first failure cancels every task still running and is re-raised, so a
    caller never sees a partially filled list.
    """

    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class MembershipService:
    """Resolves users' group memberships into display-ready results."""

    def __init__(self, directory: DirectoryClient, settings: MembershipConfig) -> None:
        self._directory = directory
        self._settings = settings

    async def resolve_memberships(self, user: UserRecord) -> MembershipResult:
        limiter = asyncio.Semaphore(self._settings.max_concurrency)
        return await self._resolve(user, limiter)

    async def resolve_memberships_for_filter(
        self, criteria: FilterCriteria
    ) -> List[MembershipResult]:
        users = [user async for user in self._directory.list_users(criteria)]
        logger.info("Resolving memberships for %d user(s)", len(users))
        if not users:
            return []
        limiter = asyncio.Semaphore(self._settings.max_concurrency)
        return await _gather_all_or_nothing([self._resolve(user, limiter) for user in users])

    async def _resolve(self, user: UserRecord, limiter: asyncio.Semaphore) -> MembershipResult:
        cap = self._settings.max_memberships_per_user
        async with limiter:
            group_ids = await self._directory.list_group_ids_for_user(
                user.id, limit=cap + 1 if cap else None
            )

        truncated = cap is not None and len(group_ids) > cap
        if truncated:
            logger.warning("User %s has more than %d memberships; truncating", user.id, cap)
            group_ids = group_ids[:cap]

        groups = await _gather_all_or_nothing(
            [self._lookup_group(group_id, limiter) for group_id in group_ids]
        )
        return MembershipResult(user=user, groups=tuple(groups), truncated=truncated)

    async def _lookup_group(self, group_id: str, limiter: asyncio.Semaphore) -> GroupRecord:
        async with limiter:
            return await self._directory.get_group(group_id)
