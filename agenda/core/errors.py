from typing import Optional


class SchedulingError(Exception):
    """Base dos erros do motor de agendamento."""


class ValidationError(SchedulingError):
    """Dados obrigatórios ausentes ou inválidos; nada externo foi chamado."""


class ConflictError(SchedulingError):
    """O horário pedido não está mais livre."""

    def __init__(self, message: str, conflict=None, reason: Optional[str] = None):
        super().__init__(message)
        self.conflict = conflict
        self.reason = reason


class UpstreamError(SchedulingError):
    """Falha do calendário ou do disparo de mensagens."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.status_code = status_code
