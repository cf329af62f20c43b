from typing import Literal, Protocol

from pydantic import BaseModel


class Notification(BaseModel):
    """User-facing message (a toast in the dashboard)."""
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
    job_id: str | None = None


class NotifierPort(Protocol):
    def notify(self, notification: Notification) -> None:  # pragma: no cover - protocol
        ...
