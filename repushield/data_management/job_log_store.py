"""Job log: one audit row per stage outcome of a pipeline run."""

import asyncio
import json
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from repushield.data_management.schemas import FetchJobRecord


class JobLogStore:
    """
    Append-only store of FetchJobRecord rows with optional JSON persistence.

    Data structure:
    {
        configuration_id: [FetchJobRecord, ...],  # in insertion order
        ...
    }
    """

    def __init__(self, persistence_path: Optional[str] = None):
        self._records: Dict[str, List[FetchJobRecord]] = {}
        self._lock = asyncio.Lock()
        self.persistence_path = Path(persistence_path) if persistence_path else None
        self.logger = logger.bind(component="JobLogStore")

        if self.persistence_path and self.persistence_path.exists():
            self._load_from_file()

    async def record(self, entry: FetchJobRecord) -> FetchJobRecord:
        async with self._lock:
            self._records.setdefault(entry.configuration_id, []).append(entry)
            if self.persistence_path:
                self._save_to_file()

        self.logger.debug(
            f"Logged {entry.platform} job: {entry.status}",
            configuration_id=entry.configuration_id,
            fetched=entry.posts_fetched,
            stored=entry.posts_stored,
        )
        return entry

    async def list_for_configuration(
        self,
        configuration_id: str,
        limit: Optional[int] = None,
    ) -> List[FetchJobRecord]:
        """Newest first."""
        async with self._lock:
            rows = list(reversed(self._records.get(configuration_id, [])))
        return rows[:limit] if limit is not None else rows

    async def latest_run(self, configuration_id: str) -> List[FetchJobRecord]:
        """Rows written by the most recent run, in stage order."""
        async with self._lock:
            rows = self._records.get(configuration_id, [])
            if not rows:
                return []
            run_id = rows[-1].run_id
            return [r for r in rows if r.run_id == run_id]

    def _save_to_file(self) -> None:
        try:
            self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = [r.model_dump(mode="json") for rows in self._records.values() for r in rows]
            with open(self.persistence_path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            self.logger.error(f"Failed to persist to file: {e}")

    def _load_from_file(self) -> None:
        try:
            with open(self.persistence_path, "r") as f:
                data = json.load(f)
            self._records = {}
            for row in data:
                entry = FetchJobRecord.model_validate(row)
                self._records.setdefault(entry.configuration_id, []).append(entry)
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load from file: {e}")
            self._records = {}
