"""
Key-value persistence for the calibration record.

The engine only needs a tiny key-value collaborator. ``MemoryStore`` serves
tests and embedding applications; ``JsonFileStore`` keeps the record in a
JSON object on disk. Failures are raised as ``PersistenceError`` and never
retried here.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .errors import PersistenceError

IS_CALIBRATED_KEY = "isCalibrated"
RED_FACTOR_KEY = "calibrationRedFactor"
GREEN_FACTOR_KEY = "calibrationGreenFactor"
BLUE_FACTOR_KEY = "calibrationBlueFactor"
LAST_CALIBRATION_DATE_KEY = "lastCalibrationDate"

CALIBRATION_KEYS = (
    IS_CALIBRATED_KEY,
    RED_FACTOR_KEY,
    GREEN_FACTOR_KEY,
    BLUE_FACTOR_KEY,
    LAST_CALIBRATION_DATE_KEY,
)


class KeyValueStore(ABC):
    """Minimal key-value collaborator"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        ...

    @abstractmethod
    def set_many(self, values: Dict[str, Any]):
        """Writes several keys in one operation."""

    @abstractmethod
    def delete_many(self, keys):
        ...

    def set(self, key: str, value: Any):
        self.set_many({key: value})

    def delete(self, key: str):
        self.delete_many([key])


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.data = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set_many(self, values: Dict[str, Any]):
        self.data.update(values)

    def delete_many(self, keys):
        for key in keys:
            self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """Stores all keys in a single JSON object file."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read store {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Store {self.path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]):
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(directory, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            # Replace in one step so readers never see a half-written file
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write store {self.path}: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set_many(self, values: Dict[str, Any]):
        data = self._read()
        data.update(values)
        self._write(data)

    def delete_many(self, keys):
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)


class CalibrationStore:
    """Maps a calibration record onto the logical store keys."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def save(self, factors: Tuple[float, float, float], calibrated_at: datetime):
        r, g, b = factors
        self.store.set_many({
            IS_CALIBRATED_KEY: True,
            RED_FACTOR_KEY: float(r),
            GREEN_FACTOR_KEY: float(g),
            BLUE_FACTOR_KEY: float(b),
            LAST_CALIBRATION_DATE_KEY: calibrated_at.isoformat(),
        })

    def load(self) -> Optional[Tuple[Tuple[float, float, float], Optional[datetime]]]:
        """
        Returns:
            ((r, g, b), calibrated_at) or None when no calibration is stored
        """
        if not self.store.get(IS_CALIBRATED_KEY, False):
            return None

        try:
            factors = (
                float(self.store.get(RED_FACTOR_KEY)),
                float(self.store.get(GREEN_FACTOR_KEY)),
                float(self.store.get(BLUE_FACTOR_KEY)),
            )
            raw_date = self.store.get(LAST_CALIBRATION_DATE_KEY)
            calibrated_at = datetime.fromisoformat(raw_date) if raw_date else None
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Stored calibration record is corrupt: {e}") from e

        return factors, calibrated_at

    def clear(self):
        self.store.delete_many(CALIBRATION_KEYS)
