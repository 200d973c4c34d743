"""Tests for transaction construction."""

from decimal import Decimal

import pytest
from stellar_sdk import Account, Asset, Keypair
from stellar_sdk.operation import ChangeTrust, CreateAccount, Payment

from polo_core.ledger.builder import (
    BASE_FEE,
    STARTING_BALANCE,
    build_onboarding_transaction,
    build_payment_transaction,
)
from polo_core.ledger.network import TESTNET_USDC_ISSUER


@pytest.fixture
def new_key() -> str:
    return Keypair.random().public_key


class TestOnboardingTransaction:
    """Tests for the create-account + trustline transaction."""

    def test_two_operations_in_order(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network
        )
        ops = envelope.transaction.operations

        assert len(ops) == 2
        assert isinstance(ops[0], CreateAccount)
        assert isinstance(ops[1], ChangeTrust)

    def test_create_account_funded_by_sponsor(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network
        )
        create = envelope.transaction.operations[0]

        assert create.destination == new_key
        assert Decimal(create.starting_balance) == Decimal(STARTING_BALANCE)
        assert create.source.account_id == sponsor_keypair.public_key

    def test_trustline_sourced_by_new_account(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network
        )
        trust = envelope.transaction.operations[1]

        assert trust.source.account_id == new_key
        assert trust.asset == Asset("USDC", TESTNET_USDC_ISSUER)

    def test_fee_sequence_and_time_bounds(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network
        )
        tx = envelope.transaction

        assert tx.source.account_id == sponsor_keypair.public_key
        assert tx.sequence == 42
        assert tx.fee == BASE_FEE * 2
        assert tx.preconditions.time_bounds.min_time == 0
        assert tx.preconditions.time_bounds.max_time == 0

    def test_timeout_sets_max_time(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network, timeout=30
        )
        assert envelope.transaction.preconditions.time_bounds.max_time > 0

    def test_unsigned(self, network, sponsor_keypair, new_key):
        envelope = build_onboarding_transaction(
            Account(sponsor_keypair.public_key, 41), new_key, network
        )
        assert envelope.signatures == []


class TestPaymentTransaction:
    """Tests for single payments."""

    def test_native_payment(self, network, sponsor_keypair, new_key):
        envelope = build_payment_transaction(
            source_public_key=sponsor_keypair.public_key,
            sequence=7,
            destination=new_key,
            amount="1.5",
            asset_symbol="XLM",
            network=network,
        )
        tx = envelope.transaction
        payment = tx.operations[0]

        assert tx.sequence == 8
        assert tx.fee == BASE_FEE
        assert isinstance(payment, Payment)
        assert payment.destination.account_id == new_key
        assert payment.asset.is_native()
        assert Decimal(payment.amount) == Decimal("1.5")

    def test_stable_asset_payment(self, network, sponsor_keypair, new_key):
        envelope = build_payment_transaction(
            source_public_key=sponsor_keypair.public_key,
            sequence=7,
            destination=new_key,
            amount="10",
            asset_symbol="USDC",
            network=network,
        )
        assert envelope.transaction.operations[0].asset == network.stable_asset

    def test_unknown_asset_rejected(self, network, sponsor_keypair, new_key):
        with pytest.raises(ValueError):
            build_payment_transaction(
                source_public_key=sponsor_keypair.public_key,
                sequence=7,
                destination=new_key,
                amount="10",
                asset_symbol="EURC",
                network=network,
            )
