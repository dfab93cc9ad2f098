"""FastAPI dependencies for API routes."""

from typing import Annotated

from fastapi import Depends, Request

from meetauction.container import Services
from meetauction.domain.access.gate import AccessGate
from meetauction.domain.access.gate_pass import GatePassService
from meetauction.domain.auctions.registry import AuctionRegistry
from meetauction.infrastructure.database.connection import SessionDep, get_session
from meetauction.shared.exceptions import ConfigurationError


def get_services(request: Request) -> Services:
    """Collaborators built in the app lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise ConfigurationError("Application services are not initialized")
    return services


def get_access_gate(services: Annotated[Services, Depends(get_services)]) -> AccessGate:
    return services.gate


def get_gate_pass_service(
    services: Annotated[Services, Depends(get_services)],
) -> GatePassService:
    return services.gate_passes


def get_auction_registry(
    services: Annotated[Services, Depends(get_services)],
) -> AuctionRegistry:
    return services.registry


AccessGateDep = Annotated[AccessGate, Depends(get_access_gate)]
GatePassServiceDep = Annotated[GatePassService, Depends(get_gate_pass_service)]
AuctionRegistryDep = Annotated[AuctionRegistry, Depends(get_auction_registry)]

__all__ = [
    "AccessGateDep",
    "AuctionRegistryDep",
    "GatePassServiceDep",
    "SessionDep",
    "get_access_gate",
    "get_auction_registry",
    "get_gate_pass_service",
    "get_services",
    "get_session",
]
