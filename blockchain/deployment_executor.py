"""
Deployment Executor
Builds, signs, submits and confirms a single contract-creation transaction
"""

import math
import time
from contextlib import contextmanager
from typing import Dict, Optional, Sequence

import requests
from loguru import logger
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, TransactionNotFound
from web3.utils.address import get_create_address

from .exceptions import (
    ConfigurationError,
    ConfirmationTimeout,
    DeployerError,
    DeploymentReverted,
    EndpointUnreachable,
    SigningError,
    SubmissionRejected,
)


# Raised by the HTTP provider when the node goes away mid-deployment
TRANSPORT_ERRORS = (requests.exceptions.ConnectionError, requests.exceptions.Timeout)


class DeploymentState:
    """Lifecycle of the creation transaction; transitions only move forward"""

    BUILT = "built"
    SIGNED = "signed"
    SUBMITTED = "submitted"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    ORDER = (BUILT, SIGNED, SUBMITTED, PENDING, CONFIRMED)


class DeploymentTransaction:
    """
    Record of one deployment attempt

    The contract address is only set once the state reaches CONFIRMED.
    """

    def __init__(
        self,
        contract_name: str,
        sender: str,
        nonce: int,
        transaction: Dict,
        expected_address: str
    ):
        self.contract_name = contract_name
        self.sender = sender
        self.nonce = nonce
        self.transaction = transaction
        self.expected_address = expected_address

        self.state = DeploymentState.BUILT
        self.tx_hash: Optional[str] = None
        self.receipt = None
        self.contract_address: Optional[str] = None
        self.error: Optional[Exception] = None

    @property
    def finished(self) -> bool:
        return self.state in (DeploymentState.CONFIRMED, DeploymentState.FAILED)

    def advance(self, state: str):
        """Move to a later state (PENDING may be skipped)"""
        if self.finished:
            raise RuntimeError(f"Deployment already {self.state}")
        if DeploymentState.ORDER.index(state) <= DeploymentState.ORDER.index(self.state):
            raise RuntimeError(f"Cannot move deployment from {self.state} to {state}")

        logger.debug(f"Deployment {self.state} -> {state}")
        self.state = state

    def fail(self, error: Exception):
        if self.finished:
            raise RuntimeError(f"Deployment already {self.state}")

        self.state = DeploymentState.FAILED
        self.error = error


def _rpc_error_message(error: Exception) -> str:
    """Extract the node's message from a JSON-RPC error"""
    if error.args and isinstance(error.args[0], dict):
        return str(error.args[0].get('message', error))
    return str(error)


class DeploymentExecutor:
    """
    Deploys a compiled contract through a signing identity

    No retries: any failure marks the deployment FAILED and propagates.
    """

    def __init__(
        self,
        identity,
        confirmation_timeout: float = 300.0,
        poll_latency: float = 0.5,
        confirmations: int = 1,
        gas_multiplier: float = 1.2
    ):
        """
        Initialize Deployment Executor

        Args:
            identity: SigningIdentity bound to the target network
            confirmation_timeout: Seconds to wait for the receipt (and confirmations)
            poll_latency: Seconds between receipt / block polls
            confirmations: Number of blocks required, 1 means included
            gas_multiplier: Buffer applied to the gas estimate
        """
        for name, value in (
            ('confirmation_timeout', confirmation_timeout),
            ('poll_latency', poll_latency),
            ('gas_multiplier', gas_multiplier)
        ):
            if not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive finite number, got {value}")
        if gas_multiplier < 1:
            raise ConfigurationError(f"gas_multiplier must be at least 1, got {gas_multiplier}")
        if confirmations < 1:
            raise ConfigurationError(f"confirmations must be at least 1, got {confirmations}")

        self.identity = identity
        self.w3: Web3 = identity.w3
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency
        self.confirmations = confirmations
        self.gas_multiplier = gas_multiplier

        self.deployment: Optional[DeploymentTransaction] = None

    def deploy(self, artifact, constructor_args: Sequence = ()) -> str:
        """
        Deploy the artifact and block until it is confirmed

        Args:
            artifact: ContractArtifact to deploy
            constructor_args: Constructor arguments, if the contract takes any

        Returns:
            Checksummed address of the deployed contract
        """
        with self._connection_guard():
            self._ensure_connected()

            sender = self.identity.address
            chain_id = self.w3.eth.chain_id
            logger.info(f"Deploying {artifact.name} from {sender} on chain {chain_id}")

            constructor = artifact.bind(self.identity).constructor(*constructor_args)

            nonce = self.w3.eth.get_transaction_count(sender, 'pending')
            gas_limit = self._estimate_gas(constructor, sender)
            gas_price = self.w3.eth.gas_price

            logger.info(f"Gas limit: {gas_limit}")
            logger.info(f"Gas price: {Web3.from_wei(gas_price, 'gwei')} gwei")

            self._check_balance(sender, gas_limit * gas_price)

            logger.info("Building deployment transaction...")
            transaction = constructor.build_transaction({
                'from': sender,
                'nonce': nonce,
                'gas': gas_limit,
                'gasPrice': gas_price,
                'chainId': chain_id
            })

        self.deployment = DeploymentTransaction(
            contract_name=artifact.name,
            sender=sender,
            nonce=nonce,
            transaction=transaction,
            expected_address=get_create_address(sender, nonce)
        )

        try:
            with self._connection_guard():
                return self._execute(self.deployment)
        except DeployerError as e:
            state = self.deployment.state
            self.deployment.fail(e)
            logger.error(f"Deployment of {artifact.name} failed after {state}: {e}")
            raise

    def _execute(self, deployment: DeploymentTransaction) -> str:
        logger.info("Signing transaction...")
        signed_tx = self.identity.sign_transaction(deployment.transaction)
        deployment.advance(DeploymentState.SIGNED)

        logger.info("Sending deployment transaction...")
        tx_hash = self._submit(signed_tx)
        deployment.tx_hash = Web3.to_hex(tx_hash)
        deployment.advance(DeploymentState.SUBMITTED)
        logger.info(f"Transaction sent: {deployment.tx_hash}")

        try:
            self.w3.eth.get_transaction(tx_hash)
            deployment.advance(DeploymentState.PENDING)
        except TransactionNotFound:
            logger.debug(f"{deployment.tx_hash} not visible yet, waiting for receipt")

        logger.info("Waiting for confirmation...")
        receipt = self._wait_for_confirmation(tx_hash)
        deployment.receipt = receipt

        contract_address = self._verify_deployed_code(receipt, deployment.expected_address)
        deployment.advance(DeploymentState.CONFIRMED)
        deployment.contract_address = contract_address

        logger.success(f"Contract {deployment.contract_name} deployed at {contract_address}")
        logger.success(f"Gas used: {receipt['gasUsed']}")
        return contract_address

    @contextmanager
    def _connection_guard(self):
        """Report a dropped or stalled endpoint as EndpointUnreachable"""
        try:
            yield
        except TRANSPORT_ERRORS as e:
            raise EndpointUnreachable(
                f"Lost connection to RPC endpoint {self.identity.endpoint_url}: {e}"
            ) from e

    def _ensure_connected(self):
        if not self.w3.is_connected():
            raise EndpointUnreachable(f"Cannot reach RPC endpoint {self.identity.endpoint_url}")

    def _estimate_gas(self, constructor, sender: str) -> int:
        try:
            gas_estimate = constructor.estimate_gas({'from': sender})
        except (ContractLogicError, ValueError) as e:
            raise SubmissionRejected(f"Gas estimation failed: {_rpc_error_message(e)}") from e

        return int(gas_estimate * self.gas_multiplier)

    def _check_balance(self, sender: str, max_cost: int):
        balance = self.w3.eth.get_balance(sender)
        if balance < max_cost:
            raise SubmissionRejected(
                f"Insufficient funds: {sender} holds {Web3.from_wei(balance, 'ether')} ETH, "
                f"deployment may cost up to {Web3.from_wei(max_cost, 'ether')} ETH"
            )

    def _submit(self, signed_tx):
        try:
            return self.w3.eth.send_raw_transaction(signed_tx.rawTransaction)
        except ValueError as e:
            message = _rpc_error_message(e)
            if 'nonce' in message.lower():
                raise SigningError(f"Nonce rejected by node: {message}") from e
            raise SubmissionRejected(f"Transaction rejected by node: {message}") from e

    def _wait_for_confirmation(self, tx_hash):
        deadline = time.monotonic() + self.confirmation_timeout

        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_latency
            )
        except TimeExhausted as e:
            raise ConfirmationTimeout(
                f"Transaction {Web3.to_hex(tx_hash)} not mined within "
                f"{self.confirmation_timeout}s; it may still be included later"
            ) from e

        if receipt['status'] != 1:
            raise DeploymentReverted(
                f"Deployment transaction {Web3.to_hex(tx_hash)} reverted "
                f"in block {receipt['blockNumber']}"
            )

        if self.confirmations > 1:
            self._wait_for_depth(receipt['blockNumber'], deadline)

        return receipt

    def _wait_for_depth(self, block_number: int, deadline: float):
        target = block_number + self.confirmations - 1

        while True:
            current = self.w3.eth.block_number
            if current >= target:
                logger.info(f"{self.confirmations} confirmations reached at block {current}")
                return

            if time.monotonic() >= deadline:
                raise ConfirmationTimeout(
                    f"Only {current - block_number + 1}/{self.confirmations} confirmations "
                    f"within {self.confirmation_timeout}s"
                )

            time.sleep(self.poll_latency)

    def _verify_deployed_code(self, receipt, expected_address: str) -> str:
        contract_address = receipt['contractAddress']
        if not contract_address:
            raise DeploymentReverted("Receipt carries no contract address")

        contract_address = Web3.to_checksum_address(contract_address)

        code = self.w3.eth.get_code(contract_address)
        if not code:
            raise DeploymentReverted(f"No code at {contract_address} after deployment")

        if contract_address != expected_address:
            logger.warning(
                f"Receipt address {contract_address} differs from nonce-derived {expected_address}"
            )

        return contract_address
