from __future__ import annotations

from fastapi import Depends, Request

from .config import AppConfig
from .container import AppContainer
from .services.membership import MembershipService


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_config(container: AppContainer = Depends(get_container)) -> AppConfig:
    return container.config


def get_membership_service(
    container: AppContainer = Depends(get_container),
) -> MembershipService:
    return container.membership
