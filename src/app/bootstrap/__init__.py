"""Bootstrap da aplicação — inicialização e wiring.

Este módulo é o composition root: configura logging, valida settings
e constrói os serviços de agendamento.

Uso:
    from app.bootstrap import initialize_app, build_scheduling_services

    # Na inicialização do serviço
    initialize_app()
    validate_runtime_settings()
    services = build_scheduling_services()
"""

from __future__ import annotations

import logging

from app.bootstrap.dependencies import (
    FEEDBACK_CLEANUP,
    FEEDBACK_TICK,
    REMINDER_CLEANUP,
    REMINDER_TICK,
    SchedulingServices,
    SchedulingStores,
    build_scheduling_services,
    create_stores,
    describe_services,
)
from app.observability import get_correlation_id
from config.logging import configure_logging
from config.settings import (
    get_base_settings,
    get_dispatch_settings,
    get_feedback_settings,
    get_scheduling_settings,
)

logger = logging.getLogger(__name__)


def initialize_app() -> None:
    """Inicializa a aplicação com todas as configurações necessárias.

    Deve ser chamada uma vez no início do serviço.

    Configura:
    - Logging estruturado JSON com correlation_id
    """
    base = get_base_settings()
    configure_logging(
        level=base.log_level.upper(),
        service_name=base.service_name,
        correlation_id_getter=get_correlation_id,
    )


def initialize_test_app() -> None:
    """Inicializa a aplicação para testes (logging em DEBUG)."""
    base = get_base_settings()
    configure_logging(
        level="DEBUG",
        service_name=f"{base.service_name}-test",
        correlation_id_getter=get_correlation_id,
    )


def collect_settings_errors() -> list[str]:
    """Roda a validação de todas as settings e agrega os erros."""
    base = get_base_settings()
    errors: list[str] = []
    errors.extend(f"base: {error}" for error in base.validate())
    errors.extend(f"scheduling: {error}" for error in get_scheduling_settings().validate(base))
    errors.extend(f"feedback: {error}" for error in get_feedback_settings().validate(base))
    errors.extend(f"dispatch: {error}" for error in get_dispatch_settings().validate())
    return errors


def validate_runtime_settings() -> None:
    """Valida settings obrigatórias no startup.

    Raises:
        RuntimeError: Qualquer erro de validação (boot inválido).
    """
    environment = get_base_settings().environment
    errors = collect_settings_errors()

    if not errors:
        logger.info(
            "settings_validated",
            extra={"component": "bootstrap", "result": "ok", "environment": environment},
        )
        return

    logger.error(
        "settings_validation_failed",
        extra={
            "component": "bootstrap",
            "result": "failed",
            "environment": environment,
            "error_count": len(errors),
            "errors": errors,
        },
    )
    details = "\n".join(f"- {error}" for error in errors)
    raise RuntimeError(f"Configuração inválida para {environment}:\n{details}")


__all__ = [
    "FEEDBACK_CLEANUP",
    "FEEDBACK_TICK",
    "REMINDER_CLEANUP",
    "REMINDER_TICK",
    "SchedulingServices",
    "SchedulingStores",
    "build_scheduling_services",
    "collect_settings_errors",
    "create_stores",
    "describe_services",
    "initialize_app",
    "initialize_test_app",
    "validate_runtime_settings",
]
