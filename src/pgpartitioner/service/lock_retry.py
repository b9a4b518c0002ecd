import threading
import time
from logging import Logger
from typing import Callable, Optional, TypeVar
from injector import inject

from pgpartitioner.config.constants import ATTACH_RETRIES, ATTACH_RETRY_SLEEP_SECONDS
from pgpartitioner.exceptions.lock_not_available_error import LockNotAvailableError
from pgpartitioner.exceptions.lock_timeout_exhausted_error import LockTimeoutExhaustedError
from pgpartitioner.repositories.ddl_repository import DdlRepository

T = TypeVar('T')


class LockRetry:
    """
    Executa uma alteração estrutural tentando obter o lock algumas vezes.

    Cada tentativa roda em um SAVEPOINT, então uma falha de lock não aborta a
    transação. Entre as tentativas espera ``sleep_seconds``; ``deadline_seconds``
    limita o tempo total e ``cancel_event`` interrompe a espera.
    """

    @inject
    def __init__(self, logger: Logger, ddl_repository: DdlRepository):
        self.logger = logger
        self.ddl_repository = ddl_repository
        self.attempts = ATTACH_RETRIES
        self.sleep_seconds = ATTACH_RETRY_SLEEP_SECONDS
        self.deadline_seconds: Optional[float] = None
        self.cancel_event: Optional[threading.Event] = None
        self.clock = time.monotonic
        self.sleep = time.sleep

    def run(self, action: Callable[[], T], description: str, deadline_seconds: Optional[float] = None,
            cancel_event: Optional[threading.Event] = None) -> T:
        """
        :raises LockTimeoutExhaustedError: quando nenhuma tentativa obteve o lock.
        """
        deadline_seconds = deadline_seconds if deadline_seconds is not None else self.deadline_seconds
        cancel_event = cancel_event or self.cancel_event
        started = self.clock()

        for attempt in range(1, self.attempts + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise LockTimeoutExhaustedError(f"{description}: cancelled before attempt {attempt}")
            try:
                with self.ddl_repository.savepoint():
                    result = action()
                if attempt > 1:
                    self.logger.info(f"[{self.__class__.__name__}] {description} succeeded on attempt {attempt}")
                return result
            except LockNotAvailableError as e:
                self.logger.warning(
                    f"[{self.__class__.__name__}] Lock not available for {description} "
                    f"(attempt {attempt}/{self.attempts}): {e.message}"
                )

            if attempt == self.attempts:
                break

            wait = self.sleep_seconds
            if deadline_seconds is not None:
                remaining = deadline_seconds - (self.clock() - started)
                if remaining <= 0:
                    self.logger.warning(f"[{self.__class__.__name__}] Deadline reached for {description}")
                    break
                wait = min(wait, remaining)

            if cancel_event is not None:
                if cancel_event.wait(wait):
                    break
            else:
                self.sleep(wait)

        raise LockTimeoutExhaustedError(f"{description}: lock not acquired after {self.attempts} attempts")
