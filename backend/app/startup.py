"""
Application startup validation and logging setup.
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Tuple

from core.config import Settings

logger = logging.getLogger(__name__)


class StartupValidator:
    """Validates configuration before serving requests"""

    def __init__(self, config: Settings):
        self.config = config
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_persistence(self) -> bool:
        """Check that the snapshot location can be written"""
        if self.config.persistence_backend == "sql":
            if not self.config.database_url:
                self.errors.append("KDS_DATABASE_URL is required for the sql backend")
                return False
            return True

        directory = Path(self.config.data_file).parent
        if directory.exists() and not os.access(directory, os.W_OK):
            self.warnings.append(
                f"Snapshot directory {directory} is not writable - tickets will not survive restarts"
            )
        return True

    def check_order_source(self) -> bool:
        """Check Square credentials used for order detail lookups"""
        if not self.config.square_access_token:
            self.warnings.append(
                "Square access token not configured - webhooks without line items keep cached items"
            )
        return True

    def run_all_checks(self) -> Tuple[bool, List[str], List[str]]:
        self.check_persistence()
        self.check_order_source()
        return not self.errors, self.errors, self.warnings


def run_startup_checks(config: Settings) -> Tuple[bool, List[str]]:
    """Run startup checks, logging every finding"""
    validator = StartupValidator(config)
    passed, errors, warnings = validator.run_all_checks()

    for warning in warnings:
        logger.warning(f"  {warning}")
    for error in errors:
        logger.error(f"  {error}")

    if not passed and config.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info(f"Startup checks passed ({config.environment} mode)")
    return passed, warnings


def configure_logging(level: str = "INFO"):
    """Configure logging for the service"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
