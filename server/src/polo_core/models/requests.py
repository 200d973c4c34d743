"""Request bodies for the HTTP API.

Fields are optional so missing values reach the services and fail with the
same 400 ``input_validation`` errors as malformed ones.
"""

from pydantic import BaseModel


class EmailChallengeRequest(BaseModel):
    email: str | None = None


class EmailVerifyRequest(BaseModel):
    email: str | None = None
    code: str | None = None


class WalletCreateRequest(BaseModel):
    tenant_id: str | None = None


class PaymentRequest(BaseModel):
    destination: str | None = None
    amount: str | int | float | None = None
    asset: str | None = None
    tenant_id: str | None = None


class AppCreateRequest(BaseModel):
    name: str | None = None
