"""
Connection target resolution and logging setup for the CLI.
"""

import argparse
import logging
import os

import requests

from utils.logging import configure_from_env, setup_logging
from utils.vault_client import VaultClient

from ..config import SyncSettings
from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def configure_logging(args: argparse.Namespace) -> None:
    """Set up logging from flags, falling back to LOG_* environment variables."""
    if args.log_level is None and not args.log_json:
        configure_from_env()
        return

    json_env = os.getenv("LOG_JSON", "false").lower() in ("true", "1", "yes")
    setup_logging(
        level=args.log_level or os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        json_format=args.log_json or json_env,
    )


def resolve_connection_target(args: argparse.Namespace, settings: SyncSettings) -> str | None:
    """
    Pick the connection target: explicit flag, then Vault, then settings.

    Raises:
        ConfigurationError: If Vault was requested but could not be read
    """
    if getattr(args, "connection_target", None):
        return args.connection_target

    if getattr(args, "use_vault", False):
        try:
            return VaultClient().get_connection_target(args.vault_path)
        except (ValueError, requests.RequestException) as e:
            raise ConfigurationError(f"Failed to read connection target from Vault: {e}") from e

    return settings.connection_target
