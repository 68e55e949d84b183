import logging
from typing import Protocol

logger = logging.getLogger(__name__)

TAG_NEW = "new-appointment"
TAG_RESCHEDULED = "rescheduled-appointment"
TAG_DELETED = "deleted-appointment"


class InAppNotifier(Protocol):
    def notify(self, title: str, body: str, tag: str) -> None:
        ...


class LogNotifier:
    """Notificação no painel: só registra o evento."""

    def notify(self, title: str, body: str, tag: str) -> None:
        logger.info("[%s] %s | %s", tag, title, body.replace("\n", " / "))


def emit(notifier: InAppNotifier, title: str, body: str, tag: str) -> None:
    # fire-and-forget: nunca derruba o fluxo principal
    try:
        notifier.notify(title, body, tag)
    except Exception:
        logger.exception("Falha ao emitir notificação in-app (%s)", tag)
