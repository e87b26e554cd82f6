from __future__ import annotations

from decimal import Decimal

import pytest
from web3 import Web3

from receivable_token.chain import ZERO_ADDRESS
from receivable_token.conversion import UnderpaymentPolicy
from receivable_token.descriptor import FungibleToken, NativeCurrency, PaymentKind
from receivable_token.errors import (
    ConfigurationError,
    ConfigurationMismatch,
    InvalidAsset,
    PaymentRejected,
    Unauthorized,
)
from receivable_token.receivable import ReceivableToken

FACTOR = Web3.to_wei(Decimal("0.02"), "ether")


def ether(amount: str) -> int:
    return Web3.to_wei(Decimal(amount), "ether")


def test_plain_transfer_mints_ten_units(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    chain.send(payer, token.address, ether("0.2"))

    assert token.total_supply() == 10
    assert token.balance_of(payer) == 10
    assert [token.owner_of(token_id) for token_id in range(10)] == [payer] * 10
    assert chain.balance_of(token.address) == ether("0.2")


def test_mint_token_with_attached_value(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    minted = chain.transact(payer, token.address, "mint_token", 10, value=ether("0.2"))

    assert minted == 10
    assert token.balance_of(payer) == 10


def test_mint_token_count_must_match_value(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))
    before = chain.balance_of(payer)

    with pytest.raises(PaymentRejected, match="incorrect payment"):
        chain.transact(payer, token.address, "mint_token", 5, value=ether("0.2"))

    assert token.total_supply() == 0
    assert chain.balance_of(payer) == before


def test_remainder_is_retained(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))
    before = chain.balance_of(payer)

    chain.send(payer, token.address, ether("0.05"))

    assert token.balance_of(payer) == 2
    assert chain.balance_of(token.address) == ether("0.05")
    assert chain.balance_of(payer) == before - ether("0.05")


def test_underpayment_is_kept_by_default(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    chain.send(payer, token.address, ether("0.01"))

    assert token.total_supply() == 0
    assert chain.balance_of(token.address) == ether("0.01")
    (entry,) = chain.logs_for(token.address, "PaymentReceived")
    assert entry.args == {"payer": payer, "kind": 0, "amount": ether("0.01"), "units": 0}


def test_underpayment_reverts_under_reject_policy(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR), underpayment_policy=UnderpaymentPolicy.REJECT)
    before = chain.balance_of(payer)

    with pytest.raises(PaymentRejected, match="insufficient payment"):
        chain.send(payer, token.address, ether("0.01"))

    assert chain.balance_of(payer) == before
    assert chain.balance_of(token.address) == 0


def test_mint_token_without_value_mints_nothing(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    assert chain.transact(payer, token.address, "mint_token") == 0
    assert token.total_supply() == 0


def test_pushed_token_hooks_do_not_accept_native_configuration(chain, payer, erc721, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))
    chain.transact(payer, erc721.address, "mint", payer, 0)

    with pytest.raises(InvalidAsset, match="invalid token"):
        chain.transact(payer, erc721.address, "safe_transfer_from", payer, token.address, 0)

    assert erc721.owner_of(0) == payer


def test_owner_and_payment_token(chain, owner, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    assert token.owner == owner
    assert token.payment_token() == {"tokenType": 0, "tokenAddress": ZERO_ADDRESS, "tokenId": 0, "aux": FACTOR}
    assert token.descriptor.kind is PaymentKind.NATIVE
    assert token.remaining_supply() == 100


def test_owner_withdraws_collected_native_currency(chain, owner, payer, accounts, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))
    chain.send(payer, token.address, ether("0.2"))
    treasury = accounts[4]
    before = chain.balance_of(treasury)

    withdrawn = chain.transact(owner, token.address, "withdraw", treasury)

    assert withdrawn == ether("0.2")
    assert chain.balance_of(treasury) == before + ether("0.2")
    assert chain.balance_of(token.address) == 0
    (entry,) = chain.logs_for(token.address, "Withdrawal")
    assert entry.args == {"recipient": treasury, "amount": ether("0.2")}


def test_withdraw_is_owner_only(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))
    chain.send(payer, token.address, ether("0.2"))

    with pytest.raises(Unauthorized, match="caller is not the owner"):
        chain.transact(payer, token.address, "withdraw", payer)

    assert chain.balance_of(token.address) == ether("0.2")


def test_constructor_rejects_unknown_descriptor(chain, owner) -> None:

    with pytest.raises(ConfigurationError):
        chain.deploy(ReceivableToken, "ReceivableToken", "RBT", {"tokenType": 0}, 101, deployer=owner)


def test_receive_reports_kind_mismatch_for_token_rails(chain, payer, erc20, deploy_token) -> None:

    token = deploy_token(FungibleToken(asset_address=erc20.address, conversion_factor=1))

    with pytest.raises(ConfigurationMismatch, match="payment kind mismatch"):
        chain.send(payer, token.address, ether("1"))


@pytest.mark.parametrize("units", [True, 1.0, -1])
def test_mint_token_count_must_be_an_integer(chain, payer, deploy_token, units) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR))

    with pytest.raises(PaymentRejected, match="incorrect payment"):
        chain.transact(payer, token.address, "mint_token", units, value=ether("0.02"))

    assert token.total_supply() == 0
