"""
Utilities Package
Configuration loading for the deployer
"""

from .config import DeployerConfig

__all__ = ['DeployerConfig']
