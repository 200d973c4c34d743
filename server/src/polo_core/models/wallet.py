"""Custody wallet and payment models."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from polo_core.models.ledger import PaymentRecord


class EncryptedSecret(BaseModel):
    """Ciphertext and IV for a custodied secret key, both hex encoded."""

    iv: str
    content: str = Field(repr=False)


class NewCustodyWallet(BaseModel):
    """Insert payload for a custody wallet row."""

    tenant_id: str
    user_identifier: str
    public_key: str
    encrypted_secret: str = Field(repr=False)
    iv: str = Field(repr=False)


class CustodyWallet(NewCustodyWallet):
    """Stored custody wallet. Unique on (tenant_id, user_identifier)."""

    id: UUID
    created_at: datetime | None = None


class InsertWalletResult(BaseModel):
    """Outcome of an insert: the stored row, or a uniqueness conflict."""

    wallet: CustodyWallet | None = None
    conflict: bool = False

    @property
    def success(self) -> bool:
        return self.wallet is not None


class WalletStatus(str, Enum):
    """CREATED: funded and stored by this call. ACTIVE: already existed."""

    CREATED = "created"
    ACTIVE = "active"


class WalletResult(BaseModel):
    """Public outcome of get-or-create. Never carries secret material."""

    status: WalletStatus
    public_key: str
    tx_hash: str | None = None

    @property
    def is_new(self) -> bool:
        return self.status == WalletStatus.CREATED


class PaymentReceipt(BaseModel):
    tx_hash: str
    amount: str
    asset: str
    destination: str


class WalletBalances(BaseModel):
    public_key: str
    balances: dict[str, str]


class WalletHistory(BaseModel):
    """Recent payments. ``success`` is False when Horizon could not be read."""

    public_key: str
    records: list[PaymentRecord] = Field(default_factory=list)
    success: bool = True
