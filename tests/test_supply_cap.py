from __future__ import annotations

import threading
from decimal import Decimal

import pytest
from web3 import Web3

from receivable_token.descriptor import FungibleToken, NativeCurrency, SemiFungibleToken
from receivable_token.errors import SupplyExceeded

FACTOR = Web3.to_wei(Decimal("0.02"), "ether")


@pytest.fixture()
def fungible(chain, erc20, payer, deploy_token):
    token = deploy_token(FungibleToken(asset_address=erc20.address, conversion_factor=1), max_supply=101)
    chain.transact(payer, erc20.address, "mint", payer, 1_000)
    chain.transact(payer, erc20.address, "approve", token.address, 1_000)
    return token


def test_usable_cap_is_one_below_max_supply(chain, fungible, payer) -> None:
    chain.transact(payer, fungible.address, "mint_token", 100)

    assert fungible.total_supply() == 100
    assert fungible.remaining_supply() == 0

    with pytest.raises(SupplyExceeded, match="total supply exceeded"):
        chain.transact(payer, fungible.address, "mint_token", 1)

    assert fungible.total_supply() == 100


def test_oversized_request_is_rejected_whole(chain, erc20, fungible, payer) -> None:
    chain.transact(payer, fungible.address, "mint_token", 60)

    with pytest.raises(SupplyExceeded):
        chain.transact(payer, fungible.address, "mint_token", 41)

    assert fungible.total_supply() == 60
    assert erc20.balance_of(payer) == 940
    assert chain.transact(payer, fungible.address, "mint_token", 40) == 40


def test_native_overpayment_beyond_cap_is_refunded_by_revert(chain, payer, deploy_token) -> None:
    token = deploy_token(NativeCurrency(conversion_factor=FACTOR), max_supply=101)
    before = chain.balance_of(payer)

    with pytest.raises(SupplyExceeded):
        chain.send(payer, token.address, Web3.to_wei(Decimal("2.02"), "ether"))

    assert token.total_supply() == 0
    assert chain.balance_of(payer) == before
    assert chain.balance_of(token.address) == 0


def test_sft_payment_beyond_cap_stays_with_sender(chain, erc1155, payer, deploy_token) -> None:
    token = deploy_token(
        SemiFungibleToken(asset_address=erc1155.address, asset_id=0, conversion_factor=1), max_supply=6
    )
    chain.transact(payer, erc1155.address, "mint", payer, 0, 10)

    with pytest.raises(SupplyExceeded):
        chain.transact(payer, erc1155.address, "safe_transfer_from", payer, token.address, 0, 6)

    assert erc1155.balance_of(payer, 0) == 10
    chain.transact(payer, erc1155.address, "safe_transfer_from", payer, token.address, 0, 5)
    assert token.total_supply() == 5


def test_max_supply_of_one_allows_no_issuance(chain, fungible, deploy_token, erc20, payer) -> None:
    token = deploy_token(FungibleToken(asset_address=erc20.address, conversion_factor=1), max_supply=1)
    chain.transact(payer, erc20.address, "approve", token.address, 1)

    with pytest.raises(SupplyExceeded):
        chain.transact(payer, token.address, "mint_token", 1)


def test_issued_count_never_exceeds_cap_across_many_payers(chain, erc20, accounts, deploy_token) -> None:
    token = deploy_token(FungibleToken(asset_address=erc20.address, conversion_factor=1), max_supply=11)
    for account in accounts:
        chain.transact(account, erc20.address, "mint", account, 10)
        chain.transact(account, erc20.address, "approve", token.address, 10)

    outcomes = []
    for account in accounts:
        try:
            chain.transact(account, token.address, "mint_token", 4)
        except SupplyExceeded:
            outcomes.append(False)
        else:
            outcomes.append(True)
        assert token.total_supply() <= 10

    assert outcomes == [True, True, False, False, False]
    assert token.total_supply() == 8
    assert chain.transact(accounts[4], token.address, "mint_token", 2) == 2
    assert token.total_supply() == 10


def test_concurrent_mints_near_cap_are_serialised(chain, erc20, accounts, deploy_token) -> None:
    token = deploy_token(FungibleToken(asset_address=erc20.address, conversion_factor=1), max_supply=11)
    for account in accounts:
        chain.transact(account, erc20.address, "mint", account, 10)
        chain.transact(account, erc20.address, "approve", token.address, 10)

    barrier = threading.Barrier(len(accounts))
    minted, rejected, unexpected = [], [], []

    def buy(account: str) -> None:
        barrier.wait()
        try:
            chain.transact(account, token.address, "mint_token", 4)
        except SupplyExceeded:
            rejected.append(account)
        except Exception as exc:  # noqa: BLE001 - surfaced through the assertion below
            unexpected.append(exc)
        else:
            minted.append(account)

    threads = [threading.Thread(target=buy, args=(account,)) for account in accounts]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert unexpected == []
    assert len(minted) == 2
    assert len(rejected) == 3
    assert token.total_supply() == 8 <= token.max_supply - 1
    assert sorted(token.balance_of(account) for account in accounts) == [0, 0, 0, 4, 4]
    assert erc20.balance_of(token.address) == 8
    assert all(erc20.balance_of(account) == 10 for account in rejected)
