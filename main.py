"""
Withdrawal Finalizer Deployer - Main Entry Point
Deploys the contract and prints KEY=ADDRESS for the configuration pipeline
"""

import os
import sys
from typing import Optional

from dotenv import load_dotenv
from loguru import logger

from blockchain.exceptions import DeployerError
from deployer import DeploymentOrchestrator, format_output_line
from utils.config import DeployerConfig

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def configure_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
):
    """
    Send logs to stderr (stdout carries only the output line)

    Tracebacks never include variable values, so the seed phrase cannot leak.

    Args:
        level: Minimum level, defaults to DEPLOYER_LOG_LEVEL or INFO
        log_format: "plain" or "json", defaults to MISC_LOG_FORMAT
        log_file: Optional file sink, defaults to DEPLOYER_LOG_FILE
    """
    level = (level or os.getenv('DEPLOYER_LOG_LEVEL') or "INFO").upper()
    log_format = (log_format or os.getenv('MISC_LOG_FORMAT') or "plain").lower()
    log_file = log_file or os.getenv('DEPLOYER_LOG_FILE')

    logger.remove()
    if log_format == "json":
        logger.add(sys.stderr, serialize=True, level=level, diagnose=False)
    else:
        logger.add(sys.stderr, format=LOG_FORMAT, level=level, diagnose=False)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            level="DEBUG",
            diagnose=False
        )


def main() -> int:
    """Run one deployment; returns the process exit code"""
    load_dotenv()
    configure_logging()

    try:
        config = DeployerConfig.from_env()
        address = DeploymentOrchestrator(config).run()
    except DeployerError as e:
        logger.opt(exception=e).error(f"Deployment failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error during deployment: {e}")
        return 1

    print(format_output_line(config.output_key, address), flush=True)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
