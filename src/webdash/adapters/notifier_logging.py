import logging

from webdash.core.interfaces.notifier import Notification


class LoggingNotifier:
    """Surfaces user-facing notifications as log lines.

    Destructive notifications are logged at WARNING so they reach the stderr sink.
    """

    def __init__(self, name: str = "webdash.notifications"):
        self.logger = logging.getLogger(name)

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.variant == "destructive" else logging.INFO
        self.logger.log(
            level,
            "[notify] %s: %s job_id=%s",
            notification.title,
            notification.description,
            notification.job_id or "-",
        )
