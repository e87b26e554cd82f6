#!/usr/bin/env python3
"""Deploy a ReceivableToken on a fresh local chain and summarise the deployment."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from eth_account import Account
from web3 import Web3

from receivable_token.assets import ERC1155Asset, ERC20Asset, ERC721Asset
from receivable_token.chain import Chain, Contract
from receivable_token.config import DeploymentArguments, load_deployment_arguments
from receivable_token.descriptor import PaymentKind, as_config, descriptor_from_config
from receivable_token.errors import ConfigurationError, Revert
from receivable_token.receivable import ReceivableToken, deploy_receivable

DEFAULT_DEPLOYER_BALANCE = Web3.to_wei(10_000, "ether")

MOCK_ASSETS: Dict[str, Tuple[Any, Tuple[Any, ...], PaymentKind]] = {
    "erc20": (ERC20Asset, ("Mock Token", "MOCK"), PaymentKind.FUNGIBLE),
    "erc721": (ERC721Asset, ("Mock Token", "MOCK"), PaymentKind.NON_FUNGIBLE),
    "erc1155": (ERC1155Asset, ("ipfs://",), PaymentKind.SEMI_FUNGIBLE),
}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--arguments",
        type=Path,
        default=None,
        help="Deployment arguments JSON (default: $RECEIVABLE_ARGUMENTS or scripts/arguments.json)",
    )
    parser.add_argument(
        "--mock-asset",
        choices=sorted(MOCK_ASSETS),
        default=None,
        help="Deploy a mock payment asset first and accept it instead of the configured asset",
    )
    parser.add_argument(
        "--private-key",
        default=None,
        help="Deployer private key. Defaults to $PRIVATE_KEY, or a freshly generated account.",
    )
    parser.add_argument("--json", action="store_true", help="Emit the summary as JSON")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        help="Logging verbosity (DEBUG, INFO, WARNING)",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )


def _load_deployer(private_key: Optional[str]) -> str:
    secret = private_key or os.environ.get("PRIVATE_KEY")
    account = Account.from_key(secret) if secret else Account.create()
    return account.address


def attach_mock_asset(
    chain: Chain,
    arguments: DeploymentArguments,
    mock: str,
    *,
    deployer: str,
) -> Tuple[DeploymentArguments, Contract]:
    """Deploy the ``mock`` asset and point the payment descriptor at it.

    The conversion factor and asset id of the configured descriptor are kept.
    """

    factory, constructor_args, kind = MOCK_ASSETS[mock]
    asset = chain.deploy(factory, *constructor_args, deployer=deployer)
    descriptor = descriptor_from_config(
        {
            "tokenType": int(kind),
            "tokenAddress": asset.address,
            "tokenId": arguments.descriptor.asset_id,
            "aux": arguments.descriptor.conversion_factor,
        }
    )
    return replace(arguments, descriptor=descriptor), asset


def deploy_from_args(args: argparse.Namespace, chain: Optional[Chain] = None) -> Dict[str, Any]:
    chain = chain or Chain()
    arguments = load_deployment_arguments(args.arguments)
    deployer = _load_deployer(args.private_key)
    chain.fund(deployer, DEFAULT_DEPLOYER_BALANCE)

    summary: Dict[str, Any] = {"Deployer": deployer}
    if args.mock_asset:
        arguments, asset = attach_mock_asset(chain, arguments, args.mock_asset, deployer=deployer)
        summary["Mock Asset"] = asset.address

    token: ReceivableToken = deploy_receivable(chain, arguments, deployer=deployer)
    summary.update(
        {
            "Remaining ETH Balance": str(Web3.from_wei(chain.balance_of(deployer), "ether")),
            "ReceivableToken": token.address,
            "Payment": as_config(token.descriptor),
            "Usable Supply": token.remaining_supply(),
            "Underpayment Policy": token.underpayment_policy.value,
        }
    )
    return summary


def _print_table(summary: Dict[str, Any]) -> None:
    width = max(len(key) for key in summary)
    for key, value in summary.items():
        if isinstance(value, dict):
            value = ", ".join(f"{name}={item}" for name, item in value.items())
        print(f"{key:<{width}} | {value}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    try:
        summary = deploy_from_args(args)
    except (ConfigurationError, Revert, ValueError) as exc:
        print(f"[❌] {exc}")
        return 1

    if args.json:
        json.dump(summary, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return 0

    print(f"[✅] ReceivableToken deployed to: {summary['ReceivableToken']}")
    _print_table(summary)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
