"""Rotas HTTP da API.

Responsabilidades:
- Definir endpoints HTTP (health, operação, opt-out)
- Validação inicial de request (body, query params)
- Delegação para os serviços de agendamento
- Respostas HTTP apropriadas

Estrutura:
- routes/health/: health checks e readiness
- routes/scheduling/: superfície operacional e opt-out

Agregação:
- router.py: registra todos os routers no app principal
"""

from __future__ import annotations

from api.routes.router import create_api_router

__all__ = ["create_api_router"]
