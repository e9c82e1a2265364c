"""
billing_config -- single public entrypoint for billing configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits above ``billing_kernel``.  The kernel MUST NEVER
    import from ``billing_config``; ``billing_config.bridges`` turns a
    ``BillingConfig`` into kernel inputs.

Environment:
    BILLING_CONFIG        path to a YAML file used instead of the default set
    BILLING_DATABASE_URL  overrides ``database.url`` from the file

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``billing_config_loaded`` log entry with the source path and checksum.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from billing_config.loader import compute_checksum, load_yaml_file, parse_config
from billing_config.schema import BillingConfig, ConfigError

_logger = logging.getLogger("billing_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_PATH_ENV = "BILLING_CONFIG"
DATABASE_URL_ENV = "BILLING_DATABASE_URL"


def get_active_config(config_path: Path | str | None = None) -> BillingConfig:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``config_path``, then ``$BILLING_CONFIG``,
    then the packaged default set.  ``$BILLING_DATABASE_URL`` replaces the
    database URL after parsing.

    Raises:
        FileNotFoundError: the resolved file does not exist.
        ConfigError: the file does not describe a valid configuration.
    """
    path = Path(config_path or os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_CONFIG_PATH)
    data = load_yaml_file(path)
    config = parse_config(data, checksum=compute_checksum(data))

    database_url = os.environ.get(DATABASE_URL_ENV)
    if database_url:
        config = replace(config, database_url=database_url)

    _logger.info(
        "billing_config_loaded",
        extra={
            "config_path": str(path),
            "checksum": config.checksum,
            "currency_code": config.currency_code,
            "database_url_overridden": bool(database_url),
        },
    )
    return config


__all__ = [
    "BillingConfig",
    "ConfigError",
    "get_active_config",
]
