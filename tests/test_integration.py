"""
Integration Tests against a local development node
"""

import pytest
from eth_account import Account
from web3 import Web3
from web3.utils.address import get_create_address

import main
from blockchain.identity_resolver import DEFAULT_DERIVATION_PATH, derive_account

from conftest import HARDHAT_MNEMONIC

# Note: These tests require a local Hardhat or Anvil node
# Run: npx hardhat node   (or: anvil)
# Then: pytest tests/test_integration.py

NODE_URL = 'http://127.0.0.1:8545'
OUTPUT_KEY = 'CONTRACTS_WITHDRAWAL_FINALIZER_ADDRESS'


def _node_available() -> bool:
    return Web3(Web3.HTTPProvider(NODE_URL, request_kwargs={'timeout': 2})).is_connected()


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not _node_available(), reason="Requires a local node at 127.0.0.1:8545"),
]


@pytest.fixture
def w3():
    """Connect to local node"""
    return Web3(Web3.HTTPProvider(NODE_URL))


@pytest.fixture
def node_env(monkeypatch, artifacts_dir):
    monkeypatch.setattr(main, 'load_dotenv', lambda: None)
    monkeypatch.setenv('ETH_CLIENT_WEB3_URL', NODE_URL)
    monkeypatch.setenv('MNEMONIC', HARDHAT_MNEMONIC)
    monkeypatch.setenv('DEPLOYER_ARTIFACTS_DIR', str(artifacts_dir))
    monkeypatch.setenv('DEPLOYER_CONFIRMATION_TIMEOUT', '60')
    monkeypatch.setenv('DEPLOYER_POLL_LATENCY', '0.1')
    monkeypatch.delenv('DEPLOYER_OUTPUT_KEY', raising=False)
    monkeypatch.delenv('DEPLOYER_DERIVATION_PATH', raising=False)
    monkeypatch.delenv('DEPLOYER_CONFIRMATIONS', raising=False)


def deploy_and_read_address(capsys) -> str:
    assert main.main() == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 1

    key, address = lines[0].split('=')
    assert key == OUTPUT_KEY
    return address


class TestEndToEnd:

    def test_address_matches_sender_and_nonce(self, w3, node_env, capsys):
        sender = derive_account(HARDHAT_MNEMONIC, DEFAULT_DERIVATION_PATH).address
        nonce = w3.eth.get_transaction_count(sender, 'pending')

        address = deploy_and_read_address(capsys)

        assert address == get_create_address(sender, nonce)
        assert w3.eth.get_code(address) == b'\x00'

    def test_each_run_deploys_a_new_instance(self, w3, node_env, capsys):
        first = deploy_and_read_address(capsys)
        second = deploy_and_read_address(capsys)

        assert first != second
        assert w3.eth.get_code(first)
        assert w3.eth.get_code(second)

    def test_unfunded_account_is_rejected(self, node_env, monkeypatch, capsys):
        Account.enable_unaudited_hdwallet_features()
        _, mnemonic = Account.create_with_mnemonic()
        monkeypatch.setenv('MNEMONIC', mnemonic)

        assert main.main() == 1
        assert capsys.readouterr().out == ""
