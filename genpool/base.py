"""
Base service class for the genpool command line tools.
"""

import argparse
import logging
import logging.config
import sys
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import GenPoolConfig, load_config


class BaseService(ABC):
    """Base class for all command line services."""

    def __init__(self, config_path: str, args: Optional[argparse.Namespace] = None, **kwargs):
        """Initialize the service with configuration."""
        self.config_path = config_path
        self.args = args or argparse.Namespace()
        self.config = self._load_config(config_path)

        # Override top-level config sections with kwargs
        for key, value in kwargs.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)

        self._setup_logging()
        self.logger = logging.getLogger(self.__class__.__name__)

    def _load_config(self, config_path: str) -> GenPoolConfig:
        """Load configuration from YAML file."""
        return load_config(config_path)

    def _setup_logging(self) -> None:
        """Setup logging configuration."""
        handlers: Dict[str, Dict[str, Any]] = {
            "default": {
                "level": "DEBUG",
                "formatter": "standard",
                "class": "logging.StreamHandler",
            },
        }

        if self.config.logging.log_dir:
            log_dir = Path(self.config.logging.log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)

            # Create log filename with date
            date_str = datetime.now().strftime("%Y-%m-%d")
            service_name = self.__class__.__name__.lower()
            log_file = log_dir / f"{date_str}_{service_name}.log"
            handlers["file"] = {
                "level": "DEBUG",
                "formatter": "standard",
                "class": "logging.FileHandler",
                "filename": str(log_file),
                "mode": "a",
            }

        logging_config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
                },
            },
            "handlers": handlers,
            "loggers": {
                "": {
                    "handlers": list(handlers),
                    "level": self.config.logging.level.upper(),
                    "propagate": False
                }
            }
        }

        logging.config.dictConfig(logging_config)

    @classmethod
    def add_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add service-specific command line arguments."""
        pass

    @abstractmethod
    def run(self) -> int:
        """
        Run the service.

        Returns:
            int: Exit code (0 for success, non-zero for error)
        """
        pass


def create_argument_parser(service_name: str) -> argparse.ArgumentParser:
    """Create a standardized argument parser for services."""
    parser = argparse.ArgumentParser(
        description=f"{service_name} for the generation worker pool client"
    )
    parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to configuration YAML file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging"
    )
    return parser


def run_service(service_class: type, service_name: str, argv: Optional[List[str]] = None) -> None:
    """Standard entry point for services."""
    parser = create_argument_parser(service_name)
    service_class.add_arguments(parser)
    args = parser.parse_args(argv)

    try:
        service = service_class(args.config, args=args)
        if args.verbose:
            logging.getLogger().setLevel(logging.DEBUG)

        exit_code = service.run()
        sys.exit(exit_code)

    except Exception as e:
        logging.error(f"Service failed: {e}")
        sys.exit(1)
