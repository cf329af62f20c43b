"""ResultSinkPort: where a completed website record ends up.

Persistence is best effort from the supervisor's point of view; the in-memory
outcome is authoritative for the current session.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from webdash.core.models.job import CompletedSite


class ResultSinkPort(ABC):
	@abstractmethod
	async def save(self, site: CompletedSite) -> None:
		"""Persist the completed site record. May raise; the caller logs and moves on."""
		raise NotImplementedError

	@abstractmethod
	async def get(self, job_id: str) -> Optional[CompletedSite]:
		"""Return the stored record for `job_id` or None."""
		raise NotImplementedError
