"""Settings das solicitações de feedback pós-sessão.

Atrasos, intervalos de lembrete, grupos de teste A/B e
parâmetros do link de opt-out.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from config.settings.base.core import BaseSettings

DEFAULT_REMINDER_INTERVALS_HOURS: tuple[int, ...] = (48, 72, 168)
DEV_OPT_OUT_SECRET = "dev-opt-out-secret"


@dataclass(frozen=True)
class ABTestGroup:
    """Variante de timing/copy das solicitações de feedback.

    Attributes:
        name: Nome do grupo (ex: 'standard', 'early')
        percentage: Peso do sorteio (0-100)
        delay_hours: Atraso da solicitação inicial a partir da conclusão
        subject: Assunto alternativo (None = copy padrão)
        message: Texto alternativo (None = copy padrão)
    """

    name: str
    percentage: int
    delay_hours: int
    subject: str | None = None
    message: str | None = None


DEFAULT_AB_GROUPS: tuple[ABTestGroup, ...] = (
    ABTestGroup(
        name="standard",
        percentage=50,
        delay_hours=24,
        subject="How was your coaching session?",
        message="We'd love to hear about your experience in today's session.",
    ),
    ABTestGroup(
        name="early",
        percentage=50,
        delay_hours=2,
        subject="Quick feedback on your session",
        message="While the session is still fresh, could you share your thoughts?",
    ),
)


@dataclass(frozen=True)
class FeedbackSettings:
    """Configurações do motor de feedback.

    Attributes:
        initial_delay_hours: Atraso padrão da solicitação inicial
        reminder_intervals_hours: Offsets dos lembretes a partir da conclusão
        max_reminders: Limite de lembretes por destinatário
        ab_testing_enabled: Habilita sorteio de grupos A/B
        ab_groups: Grupos configurados (pesos devem somar 100)
        opt_out_secret: Segredo HMAC do token de opt-out
        client_url: Base dos links de feedback/opt-out
    """

    initial_delay_hours: int = 24
    reminder_intervals_hours: tuple[int, ...] = DEFAULT_REMINDER_INTERVALS_HOURS
    max_reminders: int = 3
    ab_testing_enabled: bool = False
    ab_groups: tuple[ABTestGroup, ...] = field(default=DEFAULT_AB_GROUPS)
    opt_out_secret: str = DEV_OPT_OUT_SECRET
    client_url: str = "http://localhost:3000"

    @property
    def reminder_count(self) -> int:
        """Quantidade efetiva de lembretes criados por destinatário."""
        return min(len(self.reminder_intervals_hours), self.max_reminders)

    def validate(self, base: BaseSettings) -> list[str]:
        """Valida configurações de feedback.

        Args:
            base: BaseSettings para verificar ambiente.

        Returns:
            Lista de erros de validação.
        """
        errors: list[str] = []

        if self.initial_delay_hours < 0:
            errors.append("FEEDBACK_INITIAL_DELAY_HOURS deve ser >= 0")

        if self.max_reminders < 0:
            errors.append("FEEDBACK_MAX_REMINDERS deve ser >= 0")

        intervals = list(self.reminder_intervals_hours)
        if any(hours <= 0 for hours in intervals):
            errors.append("FEEDBACK_REMINDER_INTERVALS deve conter apenas valores > 0")
        if intervals != sorted(intervals):
            errors.append("FEEDBACK_REMINDER_INTERVALS deve ser crescente")

        if self.ab_testing_enabled:
            errors.extend(self._validate_ab_groups())

        if not self.opt_out_secret:
            errors.append("FEEDBACK_OPT_OUT_SECRET não pode ser vazio")
        elif base.is_production and self.opt_out_secret == DEV_OPT_OUT_SECRET:
            errors.append("FEEDBACK_OPT_OUT_SECRET padrão proibido em production")

        if not self.client_url:
            errors.append("CLIENT_URL não pode ser vazio")

        return errors

    def _validate_ab_groups(self) -> list[str]:
        errors: list[str] = []
        if not self.ab_groups:
            return ["FEEDBACK_AB_GROUPS vazio com A/B habilitado"]

        names = [group.name for group in self.ab_groups]
        if len(names) != len(set(names)):
            errors.append("FEEDBACK_AB_GROUPS contém nomes duplicados")

        for group in self.ab_groups:
            if group.percentage < 0:
                errors.append(f"Grupo A/B {group.name}: percentage deve ser >= 0")
            if group.delay_hours < 0:
                errors.append(f"Grupo A/B {group.name}: delay_hours deve ser >= 0")

        total = sum(group.percentage for group in self.ab_groups)
        if total != 100:
            errors.append(f"Pesos dos grupos A/B devem somar 100 (atual: {total})")

        return errors


def _parse_intervals(raw: str) -> tuple[int, ...]:
    """Converte '48,72,168' em tupla de inteiros."""
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    return tuple(int(part) for part in parts)


def _parse_ab_groups(raw: str) -> tuple[ABTestGroup, ...]:
    """Converte JSON de grupos A/B em tupla de ABTestGroup.

    Formato: [{"name": "standard", "percentage": 50, "delay_hours": 24}, ...]
    """
    data = json.loads(raw)
    return tuple(
        ABTestGroup(
            name=str(item["name"]),
            percentage=int(item["percentage"]),
            delay_hours=int(item["delay_hours"]),
            subject=item.get("subject"),
            message=item.get("message"),
        )
        for item in data
    )


def _load_feedback_from_env() -> FeedbackSettings:
    """Carrega FeedbackSettings de variáveis de ambiente."""
    intervals_raw = os.getenv("FEEDBACK_REMINDER_INTERVALS", "")
    groups_raw = os.getenv("FEEDBACK_AB_GROUPS", "")
    return FeedbackSettings(
        initial_delay_hours=int(os.getenv("FEEDBACK_INITIAL_DELAY_HOURS", "24")),
        reminder_intervals_hours=(
            _parse_intervals(intervals_raw) if intervals_raw else DEFAULT_REMINDER_INTERVALS_HOURS
        ),
        max_reminders=int(os.getenv("FEEDBACK_MAX_REMINDERS", "3")),
        ab_testing_enabled=os.getenv("FEEDBACK_AB_TESTING", "").lower() in ("true", "1", "yes"),
        ab_groups=_parse_ab_groups(groups_raw) if groups_raw else DEFAULT_AB_GROUPS,
        opt_out_secret=os.getenv("FEEDBACK_OPT_OUT_SECRET", DEV_OPT_OUT_SECRET),
        client_url=os.getenv("CLIENT_URL", "http://localhost:3000"),
    )


@lru_cache(maxsize=1)
def get_feedback_settings() -> FeedbackSettings:
    """Retorna instância cacheada de FeedbackSettings."""
    return _load_feedback_from_env()
