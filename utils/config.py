"""
Deployer Configuration
Builds an explicit configuration value from environment variables
"""

import math
import os
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import urlparse

from blockchain.exceptions import ConfigurationError
from blockchain.identity_resolver import DEFAULT_DERIVATION_PATH, validate_derivation_path

DEFAULT_CONTRACT_NAME = "WithdrawalFinalizer"
DEFAULT_OUTPUT_KEY = "CONTRACTS_WITHDRAWAL_FINALIZER_ADDRESS"

_OUTPUT_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_endpoint_url(url: str) -> str:
    """Check that the RPC endpoint is an http(s) URL with a host"""
    url = (url or "").strip()
    if not url:
        raise ConfigurationError("ETH_CLIENT_WEB3_URL must be set")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigurationError(f"Malformed RPC endpoint URL: {url!r}")
    return url


@dataclass(frozen=True)
class DeployerConfig:
    """Everything one deployment run needs, resolved before any network call."""

    endpoint_url: str
    seed_phrase: str = field(repr=False)
    derivation_path: str = DEFAULT_DERIVATION_PATH
    contract_name: str = DEFAULT_CONTRACT_NAME
    output_key: str = DEFAULT_OUTPUT_KEY
    artifacts_dir: str = "artifacts"
    confirmation_timeout: float = 300.0
    poll_latency: float = 0.5
    confirmations: int = 1
    gas_multiplier: float = 1.2
    rpc_timeout: float = 30.0

    def __post_init__(self):
        validate_endpoint_url(self.endpoint_url)
        validate_derivation_path(self.derivation_path)

        if not self.seed_phrase or not self.seed_phrase.strip():
            raise ConfigurationError("MNEMONIC must be set")
        if not self.contract_name:
            raise ConfigurationError("Contract name must not be empty")
        if not _OUTPUT_KEY_RE.match(self.output_key or ""):
            raise ConfigurationError(f"Malformed output key: {self.output_key!r}")
        for name in ('confirmation_timeout', 'poll_latency', 'gas_multiplier', 'rpc_timeout'):
            if not math.isfinite(getattr(self, name)):
                raise ConfigurationError(f"{name} must be a finite number")
        if self.confirmation_timeout <= 0:
            raise ConfigurationError("Confirmation timeout must be positive")
        if self.poll_latency <= 0:
            raise ConfigurationError("Poll latency must be positive")
        if self.confirmations < 1:
            raise ConfigurationError("At least one confirmation is required")
        if self.gas_multiplier < 1:
            raise ConfigurationError("Gas multiplier must be at least 1")
        if self.rpc_timeout <= 0:
            raise ConfigurationError("RPC timeout must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DeployerConfig":
        """
        Read configuration from environment variables

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated DeployerConfig
        """
        env = os.environ if environ is None else environ

        return cls(
            endpoint_url=env.get('ETH_CLIENT_WEB3_URL', '').strip(),
            seed_phrase=env.get('MNEMONIC', ''),
            derivation_path=env.get('DEPLOYER_DERIVATION_PATH', DEFAULT_DERIVATION_PATH).strip(),
            contract_name=env.get('DEPLOYER_CONTRACT_NAME', DEFAULT_CONTRACT_NAME),
            output_key=env.get('DEPLOYER_OUTPUT_KEY', DEFAULT_OUTPUT_KEY),
            artifacts_dir=env.get('DEPLOYER_ARTIFACTS_DIR', 'artifacts'),
            confirmation_timeout=_number(env, 'DEPLOYER_CONFIRMATION_TIMEOUT', 300.0, float),
            poll_latency=_number(env, 'DEPLOYER_POLL_LATENCY', 0.5, float),
            confirmations=_number(env, 'DEPLOYER_CONFIRMATIONS', 1, int),
            gas_multiplier=_number(env, 'DEPLOYER_GAS_MULTIPLIER', 1.2, float),
            rpc_timeout=_number(env, 'DEPLOYER_RPC_TIMEOUT', 30.0, float),
        )


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
