"""
Blockchain Package
Identity derivation, compiled artifacts and contract deployment
"""

from .contract_artifacts import ArtifactStore, ContractArtifact
from .deployment_executor import DeploymentExecutor, DeploymentState, DeploymentTransaction
from .identity_resolver import IdentityResolver, SigningIdentity, derive_account

__all__ = [
    'ArtifactStore',
    'ContractArtifact',
    'DeploymentExecutor',
    'DeploymentState',
    'DeploymentTransaction',
    'IdentityResolver',
    'SigningIdentity',
    'derive_account'
]
