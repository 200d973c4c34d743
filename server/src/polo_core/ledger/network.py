"""Stellar network selection."""

from dataclasses import dataclass

from stellar_sdk import Asset, Network

from polo_core.config import Settings

STABLE_ASSET_CODE = "USDC"
NATIVE_ASSET_CODE = "XLM"

# Centre USDC on mainnet
MAINNET_USDC_ISSUER = "GA5ZSEJYB37JRC5AVCIA5MOP4RHTM335X2KGX3IHOJAPP5RE34K4KZVN"
TESTNET_USDC_ISSUER = "GBBD47IF6LWK7P7MDEVSCWR7DPUWV3NY3DTQEVFL4NAT4AQH3ZLLFLA5"


@dataclass(frozen=True)
class NetworkConfig:
    """Everything needed to talk to one Stellar network.

    Attributes:
        name: "testnet" or "mainnet".
        horizon_url: Horizon base URL.
        passphrase: Network passphrase used when signing.
        stable_asset_code: Code of the platform stable asset.
        stable_issuer: Issuer account of the platform stable asset.
    """

    name: str
    horizon_url: str
    passphrase: str
    stable_asset_code: str = STABLE_ASSET_CODE
    stable_issuer: str = TESTNET_USDC_ISSUER

    @property
    def stable_asset(self) -> Asset:
        return Asset(self.stable_asset_code, self.stable_issuer)

    def asset_for(self, symbol: str) -> Asset:
        """Map an asset symbol to the native or stable asset."""
        if symbol == NATIVE_ASSET_CODE:
            return Asset.native()
        if symbol == self.stable_asset_code:
            return self.stable_asset
        raise ValueError(f"Unsupported asset: {symbol}")

    @property
    def supported_assets(self) -> tuple[str, str]:
        return (NATIVE_ASSET_CODE, self.stable_asset_code)


def network_from_settings(settings: Settings) -> NetworkConfig:
    """Build the network config for STELLAR_NETWORK."""
    if settings.stellar_network in ("mainnet", "public"):
        config = NetworkConfig(
            name="mainnet",
            horizon_url="https://horizon.stellar.org",
            passphrase=Network.PUBLIC_NETWORK_PASSPHRASE,
            stable_issuer=MAINNET_USDC_ISSUER,
        )
    else:
        config = NetworkConfig(
            name="testnet",
            horizon_url="https://horizon-testnet.stellar.org",
            passphrase=Network.TESTNET_NETWORK_PASSPHRASE,
            stable_issuer=TESTNET_USDC_ISSUER,
        )

    if settings.horizon_url:
        config = NetworkConfig(
            name=config.name,
            horizon_url=settings.horizon_url,
            passphrase=config.passphrase,
            stable_asset_code=config.stable_asset_code,
            stable_issuer=config.stable_issuer,
        )
    return config
