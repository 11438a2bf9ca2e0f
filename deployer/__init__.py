"""
Deployer Core Package
Orchestrates one contract deployment per invocation
"""

from .orchestrator import DeploymentOrchestrator, format_output_line

__all__ = ['DeploymentOrchestrator', 'format_output_line']
