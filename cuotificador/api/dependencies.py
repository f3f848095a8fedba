"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from cuotificador.config import settings
from cuotificador.domain.permissions import Capability, PermissionPolicy, StaticPermissionPolicy, authorize
from cuotificador.domain.rate_table import RateTable
from cuotificador.infrastructure.clients.payway import ProviderRegistry
from cuotificador.infrastructure.database.repositories import RateRepository
from cuotificador.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_permission_policy() -> PermissionPolicy:
    """Policy granting the capabilities configured for this process"""
    return StaticPermissionPolicy(settings.granted_capabilities)


def require(capability: Capability):
    """Dependency that rejects the request unless the policy grants `capability`"""

    def check(policy: PermissionPolicy = Depends(get_permission_policy)) -> None:
        authorize(policy, capability)

    return check


def get_provider_registry(request: Request) -> ProviderRegistry:
    """Provider clients owned by the running application"""
    return request.app.state.provider_registry


def get_rate_table(db: Session = Depends(get_db)) -> RateTable:
    """Rate table backed by the request's database session"""
    return RateTable(RateRepository(db))
