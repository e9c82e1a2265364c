"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``billing_config.schema.BillingConfig``.  Callers use
``billing_config.get_active_config()``; this module is the machinery
behind it.

Invariants enforced
-------------------
* Every parse error raises ``ConfigError`` naming the offending key.
* ``compute_checksum`` is deterministic for identical input.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingConfig, ConfigError

_SECTIONS = ("database", "currency", "numbering", "invoicing", "logging")
_DOCUMENT_TYPES = ("sales_order", "invoice")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigError: if the top level is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def _positive_int(section: dict[str, Any], key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"'{where}.{key}' must be a positive integer, got {value!r}")
    return value


def parse_config(data: dict[str, Any], checksum: str = "") -> BillingConfig:
    """
    Parse a loaded YAML mapping into a BillingConfig.

    Missing sections and keys take the BillingConfig defaults; unknown
    top-level sections are rejected.

    Raises:
        ConfigError: unknown section, wrong type or out-of-range value.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ConfigError(f"Unknown configuration sections: {', '.join(unknown)}")

    defaults = BillingConfig()
    database = _section(data, "database")
    currency = _section(data, "currency")
    numbering = _section(data, "numbering")
    invoicing = _section(data, "invoicing")
    logging_section = _section(data, "logging")

    database_url = database.get("url", defaults.database_url)
    if not isinstance(database_url, str) or not database_url:
        raise ConfigError("'database.url' must be a non-empty string")

    prefixes = dict(defaults.number_prefixes)
    raw_prefixes = numbering.get("prefixes") or {}
    if not isinstance(raw_prefixes, dict):
        raise ConfigError("'numbering.prefixes' must be a mapping")
    for document_type, prefix in raw_prefixes.items():
        if document_type not in _DOCUMENT_TYPES:
            raise ConfigError(f"Unknown document type in prefixes: {document_type!r}")
        prefixes[document_type] = str(prefix)

    payment_terms = invoicing.get("payment_terms_days", defaults.payment_terms_days)
    if isinstance(payment_terms, bool) or not isinstance(payment_terms, int) or payment_terms < 0:
        raise ConfigError(
            f"'invoicing.payment_terms_days' must be a non-negative integer, got {payment_terms!r}"
        )

    log_level = str(logging_section.get("level", defaults.log_level)).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"'logging.level' is not a logging level: {log_level!r}")

    return BillingConfig(
        database_url=database_url,
        echo_sql=bool(database.get("echo", defaults.echo_sql)),
        currency_code=str(currency.get("code", defaults.currency_code)),
        currency_symbol=str(currency.get("symbol", defaults.currency_symbol)),
        major_unit_divisor=_positive_int(
            currency, "major_unit_divisor", defaults.major_unit_divisor, "currency"
        ),
        number_width=_positive_int(
            numbering, "width", defaults.number_width, "numbering"
        ),
        number_prefixes=prefixes,
        payment_terms_days=payment_terms,
        log_level=log_level,
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
