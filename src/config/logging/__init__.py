"""Logging estruturado do coaching-scheduler.

Uso:
    from config.logging import configure_logging, get_logger

    # Uma vez, no bootstrap
    configure_logging(level="INFO", service_name="coaching-scheduler")

    # Em qualquer módulo
    logger = get_logger(__name__)
    logger.info("reminder_dispatched", extra={"session_id": "s-1"})

Todo log carrega correlation_id, service, level, logger, message e
asctime. Apenas ids vão em `extra`; nomes, emails e telefones nunca.
"""

from config.logging.config import configure_logging, get_logger, log_side_effect_failure
from config.logging.filters import CorrelationIdFilter
from config.logging.formatters import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    create_json_formatter,
)

__all__ = [
    "FIELD_RENAME_MAP",
    "REQUIRED_LOG_FIELDS",
    "CorrelationIdFilter",
    "configure_logging",
    "create_json_formatter",
    "get_logger",
    "log_side_effect_failure",
]
