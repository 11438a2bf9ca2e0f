"""
Deployment Orchestrator
Runs identity resolution and contract deployment in order for one invocation
"""

from loguru import logger

from blockchain.contract_artifacts import ArtifactStore
from blockchain.deployment_executor import DeploymentExecutor
from blockchain.identity_resolver import IdentityResolver
from utils.config import DeployerConfig


def format_output_line(key: str, address: str) -> str:
    """Render the KEY=ADDRESS line consumed by the configuration pipeline"""
    return f"{key}={address}"


class DeploymentOrchestrator:
    """
    Composes the resolver, artifact store and executor

    Each run gets a fresh connection and identity; nothing is reused or persisted.
    """

    def __init__(self, config: DeployerConfig):
        """
        Initialize Deployment Orchestrator

        Args:
            config: Validated deployer configuration
        """
        self.config = config
        self.artifacts = ArtifactStore(config.artifacts_dir)

    def run(self) -> str:
        """
        Deploy the configured contract

        Returns:
            Address of the confirmed contract
        """
        logger.info(f"Deploying {self.config.contract_name} via {self.config.endpoint_url}")

        identity = IdentityResolver(self.config).resolve()
        artifact = self.artifacts.get(self.config.contract_name)

        executor = DeploymentExecutor(
            identity,
            confirmation_timeout=self.config.confirmation_timeout,
            poll_latency=self.config.poll_latency,
            confirmations=self.config.confirmations,
            gas_multiplier=self.config.gas_multiplier
        )
        return executor.deploy(artifact)
