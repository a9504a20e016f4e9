"""
Токен отмены запроса.

Один токен создаётся на входящий запрос и передаётся по ссылке во все
задачи этого запроса. Источники отмены: дедлайн запроса и разрыв
соединения клиентом. Сработавший токен остаётся в этом состоянии до конца
жизни запроса.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"


class CancellationToken:
    """
    Широковещательный сигнал отмены поверх asyncio.Event.

    Производный токен (child) срабатывает вместе с родителем или по своему
    дедлайну. Срабатывание производного токена на родителя не влияет.

    Создавать токен с timeout можно только внутри работающего event loop.

    Attributes:
        reason: причина отмены (None, пока токен не сработал)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        parent: Optional["CancellationToken"] = None,
    ):
        self._event = asyncio.Event()
        self._children: list[CancellationToken] = []
        self._timer: Optional[asyncio.TimerHandle] = None
        self.reason: Optional[str] = None

        if parent is not None:
            parent._children.append(self)
            if parent.cancelled:
                self.cancel(parent.reason)
                return

        if timeout is not None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(timeout, self.cancel, DEADLINE_EXCEEDED)

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = "cancelled") -> None:
        """Переводит токен (и все производные) в состояние отмены. Повторный вызов ничего не делает."""
        if self._event.is_set():
            return

        self.reason = reason
        self._event.set()
        self._release_timer()
        logger.debug(f"Токен отменён: {reason}")

        for child in self._children:
            child.cancel(reason)

    async def wait(self) -> None:
        """Ждёт срабатывания токена."""
        await self._event.wait()

    def child(self, timeout: Optional[float] = None) -> "CancellationToken":
        return CancellationToken(timeout=timeout, parent=self)

    def close(self) -> None:
        """Освобождает таймер дедлайна, не отменяя токен."""
        self._release_timer()
        for child in self._children:
            child.close()

    def _release_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


async def sleep_unless_cancelled(token: CancellationToken, delay: float) -> bool:
    """
    Ждёт delay секунд или срабатывания токена, смотря что наступит раньше.

    Args:
        token: токен отмены
        delay: длительность ожидания в секундах

    Returns:
        bool: True если задержка истекла, False если сработал токен
    """
    if token.cancelled:
        return False

    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({waiter}, timeout=delay)
    finally:
        waiter.cancel()

    return not done
