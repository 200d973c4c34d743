"""Pure construction of unsigned Stellar transactions.

Nothing here touches the network: callers fetch account sequence numbers
beforehand and sign/submit afterwards.
"""

from stellar_sdk import Account, TransactionBuilder, TransactionEnvelope

from polo_core.ledger.network import NetworkConfig

BASE_FEE = 100  # stroops per operation

# Base reserve (2 x 0.5 XLM) + one trustline (0.5 XLM) + fee headroom
STARTING_BALANCE = "2"


def _builder(
    source: Account,
    network: NetworkConfig,
    timeout: int | None,
) -> TransactionBuilder:
    builder = TransactionBuilder(
        source_account=source,
        network_passphrase=network.passphrase,
        base_fee=BASE_FEE,
    )
    if timeout is None:
        builder.add_time_bounds(0, 0)  # always valid
    else:
        builder.set_timeout(timeout)
    return builder


def build_onboarding_transaction(
    sponsor_account: Account,
    new_public_key: str,
    network: NetworkConfig,
    timeout: int | None = None,
) -> TransactionEnvelope:
    """Fund a new account and open its stable-asset trustline atomically.

    Operation 1 (source: sponsor) creates the account with STARTING_BALANCE.
    Operation 2 (source: the new account) establishes the trustline, so the
    envelope needs both the sponsor's and the new account's signatures.

    Args:
        sponsor_account: Sponsor account with its current sequence number
        new_public_key: Public key of the account to create
        network: Target network
        timeout: Optional validity window in seconds

    Returns:
        Unsigned transaction envelope
    """
    builder = _builder(sponsor_account, network, timeout)
    builder.append_create_account_op(
        destination=new_public_key,
        starting_balance=STARTING_BALANCE,
        source=sponsor_account.account.account_id,
    )
    builder.append_change_trust_op(
        asset=network.stable_asset,
        source=new_public_key,
    )
    return builder.build()


def build_payment_transaction(
    source_public_key: str,
    sequence: int,
    destination: str,
    amount: str,
    asset_symbol: str,
    network: NetworkConfig,
    timeout: int | None = None,
) -> TransactionEnvelope:
    """Build a single payment of ``amount`` ``asset_symbol`` to ``destination``.

    ``sequence`` is the source account's current sequence number; the built
    transaction uses ``sequence + 1``.
    """
    source = Account(source_public_key, sequence)
    builder = _builder(source, network, timeout)
    builder.append_payment_op(
        destination=destination,
        asset=network.asset_for(asset_symbol),
        amount=amount,
    )
    return builder.build()
