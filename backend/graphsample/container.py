from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import FastAPI

from .config import AppConfig
from .services.graph import DirectoryClient
from .services.membership import MembershipService
from .services.token_provider import TokenProvider


@dataclass
class AppContainer:
    config: AppConfig
    token_provider: TokenProvider
    directory: DirectoryClient
    membership: MembershipService

    @classmethod
    def build(
        cls,
        config: AppConfig,
        token_provider: TokenProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "AppContainer":
        token_provider = token_provider or TokenProvider(config.azure, config.token_cache)
        directory = DirectoryClient(config, token_provider, transport=transport)
        membership = MembershipService(directory, config.membership)

        return cls(
            config=config,
            token_provider=token_provider,
            directory=directory,
            membership=membership,
        )

    async def startup(self, app: FastAPI) -> None:
        app.state.container = self

    async def shutdown(self, app: FastAPI) -> None:
        await self.directory.close()
