"""FastAPI routes for wallets, payments, OTP login and apps."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Response, status

from polo_core import __version__
from polo_core.api.auth import (
    ConsoleCaller,
    Container,
    TenantCaller,
    UserCaller,
    resolve_tenant,
)
from polo_core.exceptions import InputValidationError, InvalidOtpError
from polo_core.models.requests import (
    AppCreateRequest,
    EmailChallengeRequest,
    EmailVerifyRequest,
    PaymentRequest,
    WalletCreateRequest,
)
from polo_core.models.wallet import WalletStatus
from polo_core.redact import mask

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")

SDK_EMAIL_APP_NAME = "Polo App"
CONSOLE_EMAIL_APP_NAME = "Polo Console"


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------


@router.get("/health")
async def health(container: Container, deep: bool = False) -> dict:
    """Liveness probe. ``deep=true`` also checks the store and Horizon."""
    body = {
        "status": "ok",
        "service": "polo-core-api",
        "version": __version__,
        "network": container.network.name,
        "timestamp": datetime.now(UTC).isoformat(),
    }
    if deep:
        store_health = await container.store.health_check()
        ledger_healthy = await container.ledger.health_check()
        body["checks"] = {"database": store_health, "horizon": {"healthy": ledger_healthy}}
        if not store_health["healthy"] or not ledger_healthy:
            body["status"] = "degraded"
    return body


# -----------------------------------------------------------------------------
# Wallets and payments
# -----------------------------------------------------------------------------


@router.post("/wallet/create")
async def create_wallet(
    caller: UserCaller,
    container: Container,
    response: Response,
    request: WalletCreateRequest | None = None,
) -> dict:
    """Create the caller's wallet, or return the existing one.

    Never returns secret material.
    """
    tenant_id = await resolve_tenant(
        caller, container, request.tenant_id if request else None
    )
    result = await container.wallets.get_or_create_wallet(
        tenant_id, caller.identity.email
    )

    if result.status is WalletStatus.ACTIVE:
        return {
            "status": result.status.value,
            "wallet": result.public_key,
            "message": "Wallet already exists",
        }

    response.status_code = status.HTTP_201_CREATED
    return {
        "status": result.status.value,
        "wallet": result.public_key,
        "tx_hash": result.tx_hash,
    }


@router.get("/wallet/balance")
async def wallet_balance(
    caller: UserCaller,
    container: Container,
    tenant_id: str | None = None,
) -> dict:
    tenant = await resolve_tenant(caller, container, tenant_id)
    balances = await container.payments.get_balances(tenant, caller.identity.email)
    return {
        "status": "success",
        "wallet": balances.public_key,
        "balances": balances.balances,
    }


@router.get("/history")
async def payment_history(
    caller: UserCaller,
    container: Container,
    tenant_id: str | None = None,
    limit: int | None = None,
) -> dict:
    tenant = await resolve_tenant(caller, container, tenant_id)
    history = await container.payments.get_history(tenant, caller.identity.email, limit)
    return {
        "status": "success" if history.success else "unavailable",
        "wallet": history.public_key,
        "history": [record.model_dump() for record in history.records],
    }


@router.post("/payment/send")
async def send_payment(
    request: PaymentRequest,
    caller: UserCaller,
    container: Container,
) -> dict:
    """Send a payment from the caller's custodied wallet."""
    tenant_id = await resolve_tenant(caller, container, request.tenant_id)
    receipt = await container.payments.send_payment(
        tenant_id,
        caller.identity.email,
        request.destination,
        request.amount,
        request.asset,
    )
    return {
        "status": "success",
        "tx_hash": receipt.tx_hash,
        "amount": receipt.amount,
        "asset": receipt.asset,
    }


# -----------------------------------------------------------------------------
# SDK end-user login (tenant key required)
# -----------------------------------------------------------------------------


@router.post("/auth/challenge")
async def sdk_challenge(
    request: EmailChallengeRequest,
    caller: TenantCaller,
    container: Container,
) -> dict:
    await container.otp.challenge(
        request.email, app_id=caller.tenant_id, app_name=SDK_EMAIL_APP_NAME
    )
    return {"status": "success", "message": "Code sent to email"}


@router.post("/auth/verify")
async def sdk_verify(
    request: EmailVerifyRequest,
    caller: TenantCaller,
    container: Container,
) -> dict:
    """Verify an SDK login code, then make sure the user has a wallet."""
    valid = await container.otp.verify(request.email, request.code, app_id=caller.tenant_id)
    if not valid:
        raise InvalidOtpError("Invalid or expired code")

    email = request.email.strip()
    await container.store.upsert_sdk_user(caller.tenant_id, email)
    wallet = await container.wallets.get_or_create_wallet(caller.tenant_id, email)
    logger.info(f"SDK login for {mask(email)} (tenant: {caller.tenant_id})")

    return {
        "status": "success",
        "message": "Authenticated successfully",
        "wallet": {
            "address": wallet.public_key,
            "status": wallet.status.value,
            "tx_hash": wallet.tx_hash,
        },
    }


# -----------------------------------------------------------------------------
# Developer console
# -----------------------------------------------------------------------------


@router.post("/console/auth/challenge")
async def console_challenge(request: EmailChallengeRequest, container: Container) -> dict:
    """Public: send a console login code."""
    await container.otp.challenge(request.email, app_name=CONSOLE_EMAIL_APP_NAME)
    return {"status": "success", "message": "Verification code sent to email"}


@router.post("/console/auth/verify")
async def console_verify(request: EmailVerifyRequest, container: Container) -> dict:
    """Public: verify a console code and issue a provider session."""
    valid = await container.otp.verify(request.email, request.code)
    if not valid:
        raise InvalidOtpError("Invalid or expired code")

    email = request.email.strip()
    developer = await container.store.upsert_developer(email)
    session = await container.provider.issue_session(email)

    return {
        "status": "success",
        "message": "Authenticated successfully",
        "token": session.access_token,
        "refresh_token": session.refresh_token,
        "expires_at": session.expires_at,
        "user": {
            "id": str(developer.id),
            "supabase_id": session.provider_user_id,
            "email": developer.email,
        },
    }


@router.get("/console/auth/me")
async def console_me(caller: ConsoleCaller) -> dict:
    return {
        "status": "success",
        "user": {"id": caller.subject_id, "email": caller.email},
    }


@router.get("/apps")
async def list_apps(caller: ConsoleCaller, container: Container) -> dict:
    apps = await container.store.list_apps(caller.subject_id)
    return {"status": "success", "apps": [app.model_dump(mode="json") for app in apps]}


@router.post("/apps", status_code=status.HTTP_201_CREATED)
async def create_app(
    request: AppCreateRequest,
    caller: ConsoleCaller,
    container: Container,
) -> dict:
    name = (request.name or "").strip()
    if not name:
        raise InputValidationError("Project name is required")
    app = await container.store.create_app(caller.subject_id, name)
    logger.info(f"App created: {app.id} by {mask(caller.email)}")
    return {"status": "created", "app": app.model_dump(mode="json")}
