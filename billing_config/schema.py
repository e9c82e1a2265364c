"""
BillingConfig schema.

The typed, frozen form of a configuration set.  YAML files are parsed into
this by the loader; nothing at runtime reads YAML directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field


class ConfigError(ValueError):
    """A configuration set is missing a field or holds an invalid value."""


@dataclass(frozen=True)
class BillingConfig:
    """Runtime settings for one deployment of the billing kernel."""

    database_url: str = "sqlite:///billing.db"
    echo_sql: bool = False
    currency_code: str = "INR"
    currency_symbol: str = "₹"
    major_unit_divisor: int = 100
    number_width: int = 5
    number_prefixes: dict[str, str] = field(
        default_factory=lambda: {"sales_order": "SO-", "invoice": "INV-"}
    )
    payment_terms_days: int = 14
    log_level: str = "INFO"
    checksum: str = ""
