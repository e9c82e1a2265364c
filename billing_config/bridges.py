"""
Config -> Kernel Bridges.

Functions that turn a BillingConfig into kernel objects.  These live in
billing_config (the producer) because the kernel must NEVER import
billing_config.

Usage:
    from billing_config import get_active_config
    from billing_config.bridges import build_orchestrator, init_engine

    config = get_active_config()
    init_engine(config)
    orchestrator = build_orchestrator(config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from billing_config.schema import BillingConfig
from billing_kernel.db.engine import init_engine_from_url
from billing_kernel.domain.clock import Clock
from billing_kernel.logging_config import configure_logging
from billing_kernel.services.billing_orchestrator import BillingOrchestrator


def init_engine(config: BillingConfig) -> Engine:
    """Configure logging at the configured level and open the engine."""
    configure_logging(level=config.log_level)
    return init_engine_from_url(config.database_url, echo=config.echo_sql)


def build_orchestrator(
    config: BillingConfig,
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock | None = None,
) -> BillingOrchestrator:
    """A BillingOrchestrator using the configured numbering, terms and currency."""
    return BillingOrchestrator(
        session_factory,
        clock,
        payment_terms_days=config.payment_terms_days,
        number_prefixes=config.number_prefixes,
        number_width=config.number_width,
        major_unit_divisor=config.major_unit_divisor,
        currency_symbol=config.currency_symbol,
    )
