"""Типизированные ошибки домена.

HTTP-слой переводит их в коды ответа, ретранслятор - в событие ``error``
для отправившего соединения.
"""


class DomainError(Exception):
    """Базовая ошибка домена с сообщением для клиента"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    pass


class ForbiddenError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class ValidationFailed(DomainError):
    pass


class InvariantViolation(DomainError):
    """Ожидаемое нарушение инварианта (например, удаление последней страницы)"""


class HandshakeRejected(Exception):
    """Отказ в установлении постоянного соединения"""

    def __init__(self, reason: str, close_code: int):
        super().__init__(reason)
        self.reason = reason
        self.close_code = close_code
