"""Deployment arguments for a receivable token.

Arguments live in a JSON file shaped like the positional constructor call::

    [
        "ReceivableToken",
        "RBT",
        {"tokenType": 1, "tokenAddress": "0x...", "tokenId": 0, "aux": 1},
        101,
        "ipfs://"
    ]

or as an object with ``name``, ``symbol``, ``payment``, ``max_supply``,
``base_uri`` and optional ``underpayment_policy`` keys. Environment variables
(read from ``.env`` through :func:`dotenv.load_dotenv`) override individual
values.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

from dotenv import load_dotenv

from .conversion import UnderpaymentPolicy
from .descriptor import PaymentDescriptor, as_config, descriptor_from_config
from .errors import ConfigurationError

_LOGGER = logging.getLogger(__name__)

DEFAULT_ARGUMENTS_PATH = Path("scripts/arguments.json")

ENV_ARGUMENTS = "RECEIVABLE_ARGUMENTS"
ENV_MAX_SUPPLY = "RECEIVABLE_MAX_SUPPLY"
ENV_BASE_URI = "RECEIVABLE_BASE_URI"
ENV_UNDERPAYMENT_POLICY = "RECEIVABLE_UNDERPAYMENT_POLICY"


@dataclass(frozen=True)
class DeploymentArguments:
    """Everything needed to construct a :class:`~receivable_token.receivable.ReceivableToken`."""

    name: str
    symbol: str
    descriptor: PaymentDescriptor
    max_supply: int
    base_uri: str = ""
    underpayment_policy: UnderpaymentPolicy = UnderpaymentPolicy.ACCEPT

    def as_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "payment": as_config(self.descriptor),
            "max_supply": self.max_supply,
            "base_uri": self.base_uri,
            "underpayment_policy": self.underpayment_policy.value,
        }


def _get_env() -> MutableMapping[str, str]:
    load_dotenv()
    return os.environ


def _parse_policy(value: Any) -> UnderpaymentPolicy:
    try:
        return UnderpaymentPolicy(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(policy.value for policy in UnderpaymentPolicy)
        raise ConfigurationError(f"Unknown underpayment policy {value!r}; expected one of {choices}") from exc


def _parse_max_supply(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("max_supply must be an integer")
    try:
        max_supply = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"max_supply must be an integer, got {value!r}") from exc
    if max_supply < 1:
        raise ConfigurationError("max_supply must be at least 1")
    return max_supply


def parse_deployment_arguments(payload: Any) -> DeploymentArguments:
    """Validate a decoded arguments payload (list or mapping)."""

    if isinstance(payload, list):
        if len(payload) not in (4, 5):
            raise ConfigurationError("Positional arguments must be [name, symbol, payment, maxSupply, uri]")
        payload = dict(zip(("name", "symbol", "payment", "max_supply", "base_uri"), payload))
    if not isinstance(payload, Mapping):
        raise ConfigurationError("Deployment arguments must be a JSON list or object")

    name = payload.get("name")
    symbol = payload.get("symbol")
    if not isinstance(name, str) or not name:
        raise ConfigurationError("Collection name is required")
    if not isinstance(symbol, str) or not symbol:
        raise ConfigurationError("Collection symbol is required")

    payment = payload.get("payment")
    if not isinstance(payment, Mapping):
        raise ConfigurationError("Payment struct is required")

    base_uri = payload.get("base_uri") or payload.get("baseURI") or ""
    return DeploymentArguments(
        name=name,
        symbol=symbol,
        descriptor=descriptor_from_config(payment),
        max_supply=_parse_max_supply(payload.get("max_supply", payload.get("maxSupply"))),
        base_uri=str(base_uri),
        underpayment_policy=_parse_policy(payload.get("underpayment_policy", UnderpaymentPolicy.ACCEPT.value)),
    )


def apply_env_overrides(arguments: DeploymentArguments, env: Mapping[str, str]) -> DeploymentArguments:
    """Return ``arguments`` with any ``RECEIVABLE_*`` overrides from ``env`` applied."""

    overrides: dict[str, Any] = {}
    if env.get(ENV_MAX_SUPPLY):
        overrides["max_supply"] = _parse_max_supply(env[ENV_MAX_SUPPLY])
    if env.get(ENV_BASE_URI):
        overrides["base_uri"] = env[ENV_BASE_URI]
    if env.get(ENV_UNDERPAYMENT_POLICY):
        overrides["underpayment_policy"] = _parse_policy(env[ENV_UNDERPAYMENT_POLICY])
    if overrides:
        _LOGGER.info("Applying environment overrides: %s", ", ".join(sorted(overrides)))
        arguments = replace(arguments, **overrides)
    return arguments


def load_deployment_arguments(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
) -> DeploymentArguments:
    """Read deployment arguments from ``path`` and apply environment overrides.

    Parameters
    ----------
    path:
        JSON file to read. Defaults to ``$RECEIVABLE_ARGUMENTS`` and then to
        ``scripts/arguments.json``.
    env:
        Mapping used to resolve overrides. When omitted ``os.environ`` (after
        ``load_dotenv``) is used.

    Raises
    ------
    ConfigurationError
        If the file is missing, is not valid JSON, or describes an invalid
        deployment.
    """

    if env is None:
        env = _get_env()
    if path is None:
        path = Path(env.get(ENV_ARGUMENTS) or DEFAULT_ARGUMENTS_PATH)

    if not path.is_file():
        raise ConfigurationError(f"Deployment arguments file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"{path} is not valid JSON: {exc}") from exc

    arguments = parse_deployment_arguments(payload)
    return apply_env_overrides(arguments, env)


__all__ = [
    "DEFAULT_ARGUMENTS_PATH",
    "DeploymentArguments",
    "apply_env_overrides",
    "load_deployment_arguments",
    "parse_deployment_arguments",
]
