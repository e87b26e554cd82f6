"""Shared fixtures: a fresh chain, funded accounts and reference payment assets."""
from __future__ import annotations

from typing import Callable, List

import pytest
from eth_account import Account
from web3 import Web3

from receivable_token.assets import ERC1155Asset, ERC20Asset, ERC721Asset
from receivable_token.chain import Chain
from receivable_token.conversion import UnderpaymentPolicy
from receivable_token.descriptor import PaymentDescriptor
from receivable_token.receivable import ReceivableToken

ACCOUNT_KEYS = ["0x" + f"{index:064x}" for index in range(1, 6)]
STARTING_BALANCE = Web3.to_wei(10_000, "ether")


@pytest.fixture()
def chain() -> Chain:
    return Chain()


@pytest.fixture()
def accounts(chain: Chain) -> List[str]:
    addresses = [Account.from_key(key).address for key in ACCOUNT_KEYS]
    for address in addresses:
        chain.fund(address, STARTING_BALANCE)
    return addresses


@pytest.fixture()
def owner(accounts: List[str]) -> str:
    return accounts[0]


@pytest.fixture()
def payer(accounts: List[str]) -> str:
    return accounts[1]


@pytest.fixture()
def erc20(chain: Chain, owner: str) -> ERC20Asset:
    return chain.deploy(ERC20Asset, "Mock Token", "MOCK", deployer=owner)


@pytest.fixture()
def erc721(chain: Chain, owner: str) -> ERC721Asset:
    return chain.deploy(ERC721Asset, "MockERC721", "M721", deployer=owner)


@pytest.fixture()
def erc1155(chain: Chain, owner: str) -> ERC1155Asset:
    return chain.deploy(ERC1155Asset, "ipfs://", deployer=owner)


@pytest.fixture()
def deploy_token(chain: Chain, owner: str) -> Callable[..., ReceivableToken]:
    """Return a factory deploying a ReceivableToken from ``owner``."""

    def _deploy(
        descriptor: PaymentDescriptor,
        max_supply: int = 101,
        underpayment_policy: UnderpaymentPolicy = UnderpaymentPolicy.ACCEPT,
    ) -> ReceivableToken:
        return chain.deploy(
            ReceivableToken,
            "ReceivableToken",
            "RBT",
            descriptor,
            max_supply,
            "ipfs://",
            underpayment_policy,
            deployer=owner,
        )

    return _deploy
