"""JSON-file implementation of ResultSinkPort.

Keeps the most recent completed website in one JSON document, the same record
the dashboard stores under its `webdash_website` key, plus an index of every
completed job so `get` works for earlier ones too.
"""
from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from webdash.core.interfaces.result_sink import ResultSinkPort
from webdash.core.models.job import CompletedSite


class JsonFileResultSink(ResultSinkPort):
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {"latest": None, "sites": {}}
        with open(self._path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, payload: Dict[str, Any]) -> None:
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2, default=str)
        os.replace(tmp_path, self._path)

    async def save(self, site: CompletedSite) -> None:
        async with self._lock:
            payload = self._read()
            record = site.to_record()
            payload["latest"] = record
            payload.setdefault("sites", {})[site.job_id] = record
            payload["meta"] = {
                "written_at": datetime.now(timezone.utc).isoformat(),
                "sink": "json-file",
                "version": 1,
            }
            self._write(payload)

    async def get(self, job_id: str) -> Optional[CompletedSite]:
        async with self._lock:
            record = self._read().get("sites", {}).get(job_id)
            return CompletedSite.model_validate(record) if record else None

    async def latest(self) -> Optional[CompletedSite]:
        async with self._lock:
            record = self._read().get("latest")
            return CompletedSite.model_validate(record) if record else None
