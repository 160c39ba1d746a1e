# spendsmart/services/errors.py
# Ошибки планировщика обязательств. Ни одна не фатальна: бот превращает их в сообщение.

from __future__ import annotations


class SchedulerError(Exception):
    """База для всех ошибок планировщика."""


class ValidationError(SchedulerError):
    """Плохой ввод. До хранилища не доходит."""


class ConfirmationRequired(ValidationError):
    """Операция требует явного подтверждения пользователя (пропуск платежа)."""


class NotFoundError(SchedulerError):
    def __init__(self, obligation_id: int):
        super().__init__(f"Обязательство #{obligation_id} не найдено")
        self.obligation_id = obligation_id


class DuplicateError(SchedulerError):
    def __init__(self, obligation_id: int):
        super().__init__(f"Обязательство #{obligation_id} уже есть")
        self.obligation_id = obligation_id


class ObligationBusy(SchedulerError):
    """По этому id уже идёт операция; вторую не запускаем."""

    def __init__(self, obligation_id: int):
        super().__init__(f"Обязательство #{obligation_id} занято, дождись окончания операции")
        self.obligation_id = obligation_id


class PersistenceFailure(SchedulerError):
    """
    Сетевой/БД-вызов не удался, локальное изменение откатано. Можно повторить.
    stage: "create" | "update" | "toggle" | "delete" | "posting" | "schedule"
    """

    retryable = True

    def __init__(self, stage: str, cause: BaseException | None = None):
        msg = f"Не удалось сохранить ({stage})"
        if cause is not None:
            msg += f": {cause}"
        super().__init__(msg)
        self.stage = stage
        self.cause = cause


class PartialCompositeFailure(SchedulerError):
    """
    Проводка создана, а расписание не сдвинулось и компенсация тоже не прошла.
    Пользователю нужно сверить вручную.
    """

    def __init__(self, obligation_id: int, posting_id: int, cause: BaseException | None = None):
        super().__init__(
            f"Проводка #{posting_id} создана, но дата обязательства #{obligation_id} не сдвинулась"
        )
        self.obligation_id = obligation_id
        self.posting_id = posting_id
        self.cause = cause
