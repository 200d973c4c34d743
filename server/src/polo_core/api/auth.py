"""API authentication dependencies."""

import logging
from typing import Annotated, Union

from fastapi import Depends, Header

from polo_core.container import ServiceContainer, get_container
from polo_core.exceptions import AuthenticationError, TenantRequiredError
from polo_core.models.identity import (
    ConsoleUser,
    Rejected,
    RejectionReason,
    TenantOnly,
    TenantUser,
)
from polo_core.redact import mask

logger = logging.getLogger(__name__)

DEFAULT_TENANT = "default"

Caller = Union[TenantUser, TenantOnly, ConsoleUser]


async def get_caller(
    container: Annotated[ServiceContainer, Depends(get_container)],
    x_publishable_key: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> Caller:
    """Resolve request credentials into the calling identity.

    Args:
        container: The service container
        x_publishable_key: Tenant key from the X-Publishable-Key header
        authorization: Bearer session token from the Authorization header

    Returns:
        TenantUser, TenantOnly or ConsoleUser

    Raises:
        AuthenticationError: If the resolver rejects the credentials
    """
    resolution = await container.resolver.resolve(x_publishable_key, authorization)
    if isinstance(resolution, Rejected):
        logger.warning(
            f"Authentication rejected ({resolution.reason.value}) "
            f"key={mask(x_publishable_key)}"
        )
        raise AuthenticationError(resolution.reason, resolution.message)
    return resolution


async def get_tenant_caller(
    caller: Annotated[Caller, Depends(get_caller)],
) -> TenantUser | TenantOnly:
    """Require a tenant key; used by the SDK credential flows."""
    if isinstance(caller, ConsoleUser):
        raise TenantRequiredError("Invalid context: missing App ID")
    return caller


async def get_user_caller(
    caller: Annotated[Caller, Depends(get_caller)],
) -> TenantUser | ConsoleUser:
    """Require a verified user; a bare tenant key only opens the OTP flows."""
    if isinstance(caller, TenantOnly):
        raise AuthenticationError(
            RejectionReason.UNAUTHENTICATED, "User session required"
        )
    return caller


async def get_console_user(
    caller: Annotated[Caller, Depends(get_caller)],
) -> ConsoleUser:
    """Require a developer session; tenant keys are not accepted."""
    if not isinstance(caller, ConsoleUser):
        raise AuthenticationError(
            RejectionReason.UNAUTHENTICATED, "Console session required"
        )
    return caller


async def resolve_tenant(
    caller: TenantUser | ConsoleUser,
    container: ServiceContainer,
    requested: str | None = None,
) -> str:
    """Pick the tenant a wallet operation runs in.

    Tenant-key callers always use their own app. Console callers may name an
    app they own; otherwise the ``default`` tenant is used only when
    ALLOW_DEFAULT_TENANT is enabled.

    Raises:
        TenantRequiredError: If no tenant can be determined
    """
    if isinstance(caller, TenantUser):
        return caller.tenant_id

    allow_default = container.settings.allow_default_tenant
    if requested:
        if requested == DEFAULT_TENANT and allow_default:
            return DEFAULT_TENANT
        apps = await container.store.list_apps(caller.subject_id)
        if any(str(app.id) == requested for app in apps):
            return requested
        logger.warning(f"Console user {mask(caller.email)} requested foreign tenant {requested}")
        raise TenantRequiredError("tenant_id does not belong to the caller")

    if allow_default:
        return DEFAULT_TENANT
    raise TenantRequiredError(
        "Tenant required. Send X-Publishable-Key or a tenant_id you own."
    )


# Type aliases for dependency injection
Container = Annotated[ServiceContainer, Depends(get_container)]
UserCaller = Annotated[TenantUser | ConsoleUser, Depends(get_user_caller)]
TenantCaller = Annotated[TenantUser | TenantOnly, Depends(get_tenant_caller)]
ConsoleCaller = Annotated[ConsoleUser, Depends(get_console_user)]
