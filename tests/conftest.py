"""
Shared fixtures for deployer tests
"""

import json
from unittest.mock import MagicMock

import pytest
from loguru import logger
from web3 import Web3

from blockchain.contract_artifacts import ContractArtifact
from blockchain.identity_resolver import SigningIdentity, derive_account

# Default Hardhat / Anvil development mnemonic
HARDHAT_MNEMONIC = "test test test test test test test test test test test junk"
HARDHAT_ACCOUNT_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
HARDHAT_ACCOUNT_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"

# First two CREATE addresses of HARDHAT_ACCOUNT_0 (nonce 0 and 1)
ACCOUNT_0_CREATE_NONCE_0 = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
ACCOUNT_0_CREATE_NONCE_1 = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"

# Init code that returns a one-byte runtime (STOP)
TRIVIAL_BYTECODE = "0x6001600c60003960016000f300"

ENDPOINT = "http://localhost:8545"


@pytest.fixture(autouse=True)
def silence_logger():
    """Drop loguru sinks added by code under test"""
    yield
    logger.remove()


@pytest.fixture
def artifact_json():
    """Hardhat artifact for a contract with no constructor arguments"""
    return {
        "_format": "hh-sol-artifact-1",
        "contractName": "WithdrawalFinalizer",
        "sourceName": "contracts/WithdrawalFinalizer.sol",
        "abi": [],
        "bytecode": TRIVIAL_BYTECODE,
        "deployedBytecode": "0x00",
        "linkReferences": {},
        "deployedLinkReferences": {}
    }


@pytest.fixture
def artifacts_dir(tmp_path, artifact_json):
    """Artifacts tree laid out the way Hardhat writes it"""
    root = tmp_path / "artifacts"
    contract_dir = root / "contracts" / "WithdrawalFinalizer.sol"
    contract_dir.mkdir(parents=True)

    (contract_dir / "WithdrawalFinalizer.json").write_text(json.dumps(artifact_json))
    (contract_dir / "WithdrawalFinalizer.dbg.json").write_text(
        json.dumps({"_format": "hh-sol-dbg-1", "buildInfo": "../../build-info/abc.json"})
    )
    return root


@pytest.fixture
def artifact():
    return ContractArtifact(
        name="WithdrawalFinalizer",
        abi=[],
        bytecode=TRIVIAL_BYTECODE,
        source_name="contracts/WithdrawalFinalizer.sol"
    )


@pytest.fixture
def mock_w3():
    """Web3 stand-in for a healthy node where account 0 deploys at nonce 0"""
    w3 = MagicMock()
    w3.is_connected.return_value = True
    w3.eth.chain_id = 31337
    w3.eth.gas_price = Web3.to_wei(1, 'gwei')
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.get_balance.return_value = Web3.to_wei(100, 'ether')

    constructor = MagicMock()
    constructor.estimate_gas.return_value = 100_000
    constructor.build_transaction.side_effect = lambda params: {
        **params,
        'data': TRIVIAL_BYTECODE,
        'value': 0
    }
    w3.eth.contract.return_value.constructor.return_value = constructor

    w3.eth.send_raw_transaction.side_effect = lambda raw: Web3.keccak(raw)
    w3.eth.get_transaction.return_value = {'blockNumber': None}
    w3.eth.wait_for_transaction_receipt.return_value = {
        'status': 1,
        'contractAddress': ACCOUNT_0_CREATE_NONCE_0,
        'blockNumber': 1,
        'gasUsed': 60_000
    }
    w3.eth.get_code.return_value = b'\x00'
    return w3


@pytest.fixture
def identity(mock_w3):
    """Signing identity for Hardhat account 0 over the mocked connection"""
    account = derive_account(HARDHAT_MNEMONIC, "m/44'/60'/0'/0/0")
    return SigningIdentity(account, mock_w3, ENDPOINT)
