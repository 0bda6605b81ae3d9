"""Shared FastAPI dependencies."""

from fastapi import Depends, Request

from custody_engine.core.container import ApplicationContainer
from custody_engine.domain.swaps import SwapOrchestrator


def get_app_container(request: Request) -> ApplicationContainer:
    return request.app.state.container


def get_orchestrator(container: ApplicationContainer = Depends(get_app_container)) -> SwapOrchestrator:
    return container.orchestrator
