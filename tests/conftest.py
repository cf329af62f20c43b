"""Shared test doubles for the tracker ports.

The fakes are hand-written port implementations; the supervisor only talks to
its ports so no HTTP is needed below the adapter tests.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from webdash.adapters.result_sink_inmemory import InMemoryResultSink
from webdash.core.config import SupervisorConfig
from webdash.core.interfaces.notifier import Notification
from webdash.core.models.job import JobSnapshot
from webdash.core.models.lookup import Found, NotFound, StatusLookup, TransportFailure


def found(status: str, progress: int = 0, **extra: Any) -> Found:
    payload: Dict[str, Any] = {"status": status, "progress": progress}
    payload.update(extra)
    return Found(JobSnapshot.from_payload(payload))


def not_found() -> NotFound:
    return NotFound()


def transport_error(status: Optional[int] = 502) -> TransportFailure:
    return TransportFailure(ConnectionError("boom"), status=status)


class ScriptedStatusClient:
    """Answers fetch_status from a script; the last entry repeats forever."""

    def __init__(self, *script: StatusLookup):
        self._script: List[StatusLookup] = list(script)
        self.calls = 0
        self.job_ids: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.gate_on_call: Optional[int] = None
        self.entered = asyncio.Event()

    def block_on_call(self, call_number: int) -> asyncio.Event:
        """Make the `call_number`-th request wait until the returned event is set."""
        self.gate = asyncio.Event()
        self.gate_on_call = call_number
        return self.gate

    async def fetch_status(self, job_id: str) -> StatusLookup:
        self.calls += 1
        self.job_ids.append(job_id)
        if self.gate is not None and self.calls == self.gate_on_call:
            self.entered.set()
            await self.gate.wait()
        if len(self._script) > 1:
            return self._script.pop(0)
        return self._script[0]


class RecordingNotifier:
    def __init__(self):
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def titles(self) -> List[str]:
        return [n.title for n in self.notifications]


class FailingSink(InMemoryResultSink):
    async def save(self, site):
        raise OSError("disk full")


@pytest.fixture
def fast_config():
    """Millisecond delays with the production caps."""
    return SupervisorConfig(
        poll_interval=0.001,
        verify_retry_delay=0.001,
        not_found_retry_delay=0.001,
        transport_retry_delay=0.001,
    )


@pytest.fixture
def sink():
    return InMemoryResultSink()


@pytest.fixture
def notifier():
    return RecordingNotifier()
