"""App — núcleo do agendamento: orquestração, domínio e infraestrutura.

Subpastas:
- bootstrap/: composition root (settings, logging, wiring dos serviços)
- domain/: sessões, preferências, lembretes, feedback e jobs
- services/: ciclo de vida, schedulers, fila de despacho e tarefas periódicas
- infra/: implementações concretas de IO (stores, canais, tokens)
- protocols/: contratos/interfaces
- observability/: correlation id e métricas em log estruturado

Padrão: app executa; api adapta; fsm governa; utils apoia.
"""
