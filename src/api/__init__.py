"""API — camada de borda HTTP.

Responsabilidades:
- Expor endpoints de health, operação e opt-out
- Validar payloads de entrada
- Traduzir erros de domínio em respostas HTTP

NÃO PODE conter: FSM, regras de sessão, agendamento ou acesso a stores.
"""
