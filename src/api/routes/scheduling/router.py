"""Superfície operacional do agendamento e opt-out de feedback.

Rotas:
- GET  /ops/reminders              lembretes (filtro opcional por sessão)
- GET  /ops/reminders/stats        contadores de lembretes
- GET  /ops/feedback/stats         contadores de solicitações de feedback
- GET  /ops/queues/stats           contadores por categoria da fila
- GET  /ops/queues/dead-letters    jobs que esgotaram as tentativas
- GET  /ops/ticks                  estado das tarefas periódicas
- POST /ops/ticks/{task_name}      força um tick
- POST /feedback/opt-out           aplica opt-out a partir do token
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from app.bootstrap import SchedulingServices

logger = logging.getLogger(__name__)

router = APIRouter()


class OptOutRequest(BaseModel):
    """Corpo do opt-out."""

    model_config = ConfigDict(extra="ignore")

    token: str = Field(min_length=1)


class OptOutResponse(BaseModel):
    """Resultado do opt-out."""

    opted_out: bool


def get_services(request: Request) -> SchedulingServices:
    """Container de serviços criado no lifespan."""
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=503, detail="services_not_ready")
    return services


Services = Annotated[SchedulingServices, Depends(get_services)]


@router.get("/ops/reminders")
async def list_reminders(services: Services, session_id: str | None = None) -> dict[str, Any]:
    """Lembretes da tabela."""
    reminders = await services.reminders.list_reminders(session_id)
    return {
        "count": len(reminders),
        "reminders": [reminder.to_dict() for reminder in reminders],
    }


@router.get("/ops/reminders/stats")
async def reminder_stats(services: Services) -> dict[str, Any]:
    return await services.reminders.stats()


@router.get("/ops/feedback/stats")
async def feedback_stats(services: Services) -> dict[str, Any]:
    return await services.feedback.stats()


@router.get("/ops/queues/stats")
async def queue_stats(services: Services) -> dict[str, Any]:
    return {"running": services.queue.running, "categories": services.queue.stats()}


@router.get("/ops/queues/dead-letters")
async def dead_letters(services: Services, category: str | None = None) -> dict[str, Any]:
    """Dead-letter (sem payload, apenas metadados do job)."""
    try:
        jobs = services.queue.dead_letters(category)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"unknown_category: {category}") from exc
    return {"count": len(jobs), "jobs": [job.to_log_dict() for job in jobs]}


@router.get("/ops/ticks")
async def tick_stats(services: Services) -> dict[str, Any]:
    return services.periodic.stats()


@router.post("/ops/ticks/{task_name}")
async def run_tick(task_name: str, services: Services) -> dict[str, Any]:
    """Força um tick (pulado se a execução anterior ainda roda)."""
    if task_name not in services.periodic.task_names():
        raise HTTPException(status_code=404, detail=f"unknown_task: {task_name}")
    outcome = await services.periodic.run_now(task_name)
    logger.info("tick_forced_via_api", extra=outcome.to_dict())
    return outcome.to_dict()


@router.post("/feedback/opt-out", response_model=OptOutResponse)
async def feedback_opt_out(body: OptOutRequest, services: Services) -> OptOutResponse:
    """Opt-out de solicitações de feedback via link assinado."""
    if not await services.feedback.handle_opt_out(body.token):
        raise HTTPException(status_code=400, detail="invalid_token")
    return OptOutResponse(opted_out=True)
