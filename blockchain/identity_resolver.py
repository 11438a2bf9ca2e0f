"""
Identity Resolver
Derives the deployer account from a seed phrase and binds it to an RPC endpoint
"""

import re
from typing import Dict

from eth_account import Account
from eth_account.hdaccount import key_from_seed, seed_from_mnemonic
from eth_account.signers.local import LocalAccount
from eth_utils import ValidationError
from loguru import logger
from web3 import Web3

from .exceptions import ConfigurationError, InvalidSeedPhrase, SigningError

DEFAULT_DERIVATION_PATH = "m/44'/60'/0'/0/1"

_DERIVATION_PATH_RE = re.compile(r"^m(/\d+'?)+$")

# BIP-32 indices at or above this are reserved for hardened derivation
HARDENED_OFFSET = 2 ** 31


def validate_derivation_path(path: str) -> str:
    """
    Check that a BIP-32 path looks like m/44'/60'/0'/0/1

    Args:
        path: Derivation path string

    Returns:
        The path, stripped of surrounding whitespace
    """
    path = (path or "").strip()
    if not _DERIVATION_PATH_RE.match(path):
        raise ConfigurationError(f"Malformed derivation path: {path!r}")

    for segment in path.split("/")[1:]:
        if int(segment.rstrip("'")) >= HARDENED_OFFSET:
            raise ConfigurationError(
                f"Derivation path index {segment} is out of range in {path!r}"
            )
    return path


def derive_account(seed_phrase: str, derivation_path: str) -> LocalAccount:
    """
    Derive a keypair from a BIP-39 mnemonic

    Purely local: no network access happens here.

    Args:
        seed_phrase: Mnemonic word list
        derivation_path: BIP-32 path, e.g. m/44'/60'/0'/0/1

    Returns:
        LocalAccount for the derived key
    """
    derivation_path = validate_derivation_path(derivation_path)
    words = " ".join((seed_phrase or "").split())

    try:
        seed = seed_from_mnemonic(words, passphrase="")
    except (ValidationError, ValueError):
        # The underlying message can echo the words back
        raise InvalidSeedPhrase("Seed phrase is not a valid BIP-39 mnemonic") from None

    return Account.from_key(key_from_seed(seed, derivation_path))


class SigningIdentity:
    """
    A derived account bound to a Web3 connection

    The connection is lazy; nothing is sent to the node until the first call.
    """

    def __init__(self, account: LocalAccount, w3: Web3, endpoint_url: str):
        self.account = account
        self.w3 = w3
        self.endpoint_url = endpoint_url

    @property
    def address(self) -> str:
        return self.account.address

    def sign_transaction(self, transaction: Dict):
        """
        Sign a transaction with the derived key

        Args:
            transaction: Transaction dict

        Returns:
            Signed transaction
        """
        try:
            return self.account.sign_transaction(transaction)
        except Exception as e:
            raise SigningError(f"Could not sign transaction: {e}") from e

    def __repr__(self) -> str:
        return f"SigningIdentity(address={self.address}, endpoint={self.endpoint_url})"


class IdentityResolver:
    """
    Resolves the deployer's signing identity from configuration
    """

    def __init__(self, config):
        """
        Initialize Identity Resolver

        Args:
            config: Deployer configuration holding endpoint and seed phrase
        """
        self.config = config

    def resolve(self) -> SigningIdentity:
        """Derive the account, then attach it to a fresh HTTP provider"""
        account = derive_account(self.config.seed_phrase, self.config.derivation_path)

        w3 = Web3(Web3.HTTPProvider(
            self.config.endpoint_url,
            request_kwargs={'timeout': self.config.rpc_timeout}
        ))

        logger.info(f"Deployer account: {account.address} ({self.config.derivation_path})")
        return SigningIdentity(account, w3, self.config.endpoint_url)
