"""Agregador de settings do coaching-scheduler.

Re-exporta todas as settings e funções de cada módulo.
Organização por domínio para isolamento de mudanças.
"""

from __future__ import annotations

# Base settings
from config.settings.base import (
    DEFAULT_SERVICE_NAME,
    BaseSettings,
    Environment,
    get_base_settings,
)

# Dispatch queue
from config.settings.dispatch import (
    QUEUE_CATEGORIES,
    DispatchSettings,
    QueueCategorySettings,
    get_dispatch_settings,
)

# Feedback engine
from config.settings.feedback import (
    ABTestGroup,
    FeedbackSettings,
    get_feedback_settings,
)

# Schedulers
from config.settings.scheduling import (
    SchedulingSettings,
    SchedulingStoreBackend,
    get_scheduling_settings,
)

__all__ = [
    "DEFAULT_SERVICE_NAME",
    "QUEUE_CATEGORIES",
    "ABTestGroup",
    "BaseSettings",
    "DispatchSettings",
    "Environment",
    "FeedbackSettings",
    "QueueCategorySettings",
    "SchedulingSettings",
    "SchedulingStoreBackend",
    "get_base_settings",
    "get_dispatch_settings",
    "get_feedback_settings",
    "get_scheduling_settings",
]
