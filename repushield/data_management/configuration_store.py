"""Configuration store with the single-active-configuration invariant.

Features:
- CRUD over monitoring configurations keyed by id
- activate() deactivates every other configuration in the same
  read-modify-write under one asyncio lock, so at most one is active
- Wholesale replacement of mutable fields on update; id and created_at never change
- Optional JSON persistence
"""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from repushield.data_management.schemas import Configuration
from repushield.errors import ConfigurationNotFoundError

IMMUTABLE_FIELDS = {"id", "created_at"}


class ConfigurationStore:
    """
    Store of monitoring configurations, passed explicitly to the scheduler and CLI.

    Data structure:
    {
        configuration_id: Configuration,
        ...
    }
    """

    def __init__(self, persistence_path: Optional[str] = None):
        """
        Initialize configuration store.

        Args:
            persistence_path: Optional path to JSON file for persistence.
        """
        self._configurations: Dict[str, Configuration] = {}
        self._lock = asyncio.Lock()
        self.persistence_path = Path(persistence_path) if persistence_path else None
        self.logger = logger.bind(component="ConfigurationStore")

        if self.persistence_path and self.persistence_path.exists():
            self._load_from_file()

    async def create(self, configuration: Configuration) -> Configuration:
        """
        Add a configuration. Creating an active one deactivates the others.

        Raises:
            ValueError: If the id already exists
        """
        async with self._lock:
            if configuration.id in self._configurations:
                raise ValueError(f"Configuration {configuration.id} already exists")

            stored = configuration.model_copy(deep=True)
            if stored.is_active:
                self._deactivate_all_locked()
            self._configurations[stored.id] = stored
            self._persist()

        self.logger.info(f"Created configuration {stored.id} for {stored.entity_name}")
        return stored.model_copy(deep=True)

    async def get(self, configuration_id: str) -> Optional[Configuration]:
        async with self._lock:
            config = self._configurations.get(configuration_id)
            return config.model_copy(deep=True) if config else None

    async def list(self) -> List[Configuration]:
        async with self._lock:
            configs = sorted(self._configurations.values(), key=lambda c: c.created_at)
            return [c.model_copy(deep=True) for c in configs]

    async def get_active(self) -> List[Configuration]:
        """Active configurations (at most one while the invariant holds)."""
        async with self._lock:
            return [c.model_copy(deep=True) for c in self._configurations.values() if c.is_active]

    async def update(self, configuration_id: str, fields: Dict[str, Any]) -> Configuration:
        """
        Replace mutable fields wholesale.

        Raises:
            ConfigurationNotFoundError: If the id is unknown
        """
        changes = {k: v for k, v in fields.items() if k not in IMMUTABLE_FIELDS}
        async with self._lock:
            existing = self._configurations.get(configuration_id)
            if existing is None:
                raise ConfigurationNotFoundError(configuration_id)

            data = existing.model_dump()
            data.update(changes)
            data["updated_at"] = datetime.now(timezone.utc)
            updated = Configuration.model_validate(data)

            if updated.is_active and not existing.is_active:
                self._deactivate_all_locked()
            self._configurations[configuration_id] = updated
            self._persist()

        self.logger.info(f"Updated configuration {configuration_id}", fields=sorted(changes))
        return updated.model_copy(deep=True)

    async def delete(self, configuration_id: str) -> bool:
        async with self._lock:
            removed = self._configurations.pop(configuration_id, None)
            if removed is not None:
                self._persist()
        return removed is not None

    async def activate(self, configuration_id: str) -> Configuration:
        """
        Make this the only active configuration.

        Raises:
            ConfigurationNotFoundError: If the id is unknown
        """
        async with self._lock:
            target = self._configurations.get(configuration_id)
            if target is None:
                raise ConfigurationNotFoundError(configuration_id)

            self._deactivate_all_locked()
            now = datetime.now(timezone.utc)
            activated = target.model_copy(update={"is_active": True, "updated_at": now})
            self._configurations[configuration_id] = activated
            self._persist()

        self.logger.info(f"Activated configuration {configuration_id}")
        return activated.model_copy(deep=True)

    async def deactivate(self, configuration_id: str) -> Configuration:
        async with self._lock:
            target = self._configurations.get(configuration_id)
            if target is None:
                raise ConfigurationNotFoundError(configuration_id)

            deactivated = target.model_copy(
                update={"is_active": False, "updated_at": datetime.now(timezone.utc)}
            )
            self._configurations[configuration_id] = deactivated
            self._persist()
        return deactivated.model_copy(deep=True)

    def _deactivate_all_locked(self) -> None:
        now = datetime.now(timezone.utc)
        for config_id, config in self._configurations.items():
            if config.is_active:
                self._configurations[config_id] = config.model_copy(
                    update={"is_active": False, "updated_at": now}
                )

    def _persist(self) -> None:
        if self.persistence_path:
            self._save_to_file()

    def _save_to_file(self) -> None:
        """Save current storage to JSON file (synchronous)."""
        try:
            self.persistence_path.parent.mkdir(parents=True, exist_ok=True)
            data = [c.model_dump(mode="json") for c in self._configurations.values()]
            with open(self.persistence_path, "w") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            self.logger.error(f"Failed to persist to file: {e}")

    def _load_from_file(self) -> None:
        try:
            with open(self.persistence_path, "r") as f:
                data = json.load(f)
            self._configurations = {}
            for row in data:
                config = Configuration.model_validate(row)
                self._configurations[config.id] = config
            self.logger.info(f"Loaded {len(self._configurations)} configurations from {self.persistence_path}")
        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load from file: {e}")
            self._configurations = {}
