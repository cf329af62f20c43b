"""In-memory implementation of ResultSinkPort.

Async-safe using an asyncio.Lock. Suitable for tests and for a session that
only needs the record for as long as the process lives.
"""
from __future__ import annotations

import asyncio
from copy import deepcopy
from typing import Dict, List, Optional

from webdash.core.interfaces.result_sink import ResultSinkPort
from webdash.core.models.job import CompletedSite


class InMemoryResultSink(ResultSinkPort):
    def __init__(self) -> None:
        self._sites: Dict[str, CompletedSite] = {}
        self._saves: List[str] = []
        self._lock = asyncio.Lock()

    async def save(self, site: CompletedSite) -> None:
        async with self._lock:
            self._sites[site.job_id] = deepcopy(site)
            self._saves.append(site.job_id)

    async def get(self, job_id: str) -> Optional[CompletedSite]:
        async with self._lock:
            site = self._sites.get(job_id)
            return deepcopy(site) if site else None

    # Convenience accessor (not part of port but useful for tests)
    def save_count(self, job_id: str) -> int:
        return self._saves.count(job_id)
