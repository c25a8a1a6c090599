import threading
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import TypeVar

import structlog

from bomguard.models.blackduck import format_timestamp
from bomguard.models.blackduck import parse_timestamp
from bomguard.models.properties import BlackDuckProperty
from bomguard.models.properties import PROPERTY_PREFIX
from bomguard.services.artifactory_service import HostRepository

logger = structlog.get_logger('property_service')

EnumT = TypeVar('EnumT', bound=Enum)

PropertyValue = str | int | datetime | Enum


class PropertyStore:
    """
    Typed access to the string properties the host stores per path.

    Values are written as strings: datetimes as millisecond UTC ISO-8601,
    enums by value and ints in decimal. Reads that fail to parse return None
    and log a warning. `lock(path)` serializes read-modify-write sequences on
    one path across threads.
    """

    def __init__(self, host: HostRepository):
        self.host = host
        self._locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    @contextmanager
    def lock(self, path: str) -> Iterator[None]:
        with self._locks_guard:
            path_lock = self._locks[path]
        with path_lock:
            yield

    def get(self, path: str, key: BlackDuckProperty | str) -> str | None:
        value = self.host.get_properties(path).get(str(key))
        return value if value not in (None, '') else None

    def get_int(self, path: str, key: BlackDuckProperty | str) -> int | None:
        value = self.get(path, key)
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            logger.warning('Property is not an integer', path=path, key=str(key), value=value)
            return None

    def get_datetime(self, path: str, key: BlackDuckProperty | str) -> datetime | None:
        value = self.get(path, key)
        if value is None:
            return None
        parsed = parse_timestamp(value)
        if parsed is None:
            logger.warning('Property is not a timestamp', path=path, key=str(key), value=value)
        return parsed

    def get_enum(self, path: str, key: BlackDuckProperty | str, enum_type: type[EnumT]) -> EnumT | None:
        value = self.get(path, key)
        if value is None:
            return None
        try:
            return enum_type(value)
        except ValueError:
            logger.warning(
                'Property has an unknown value', path=path, key=str(key),
                value=value, expected=enum_type.__name__,
            )
            return None

    def has(self, path: str, key: BlackDuckProperty | str) -> bool:
        return self.get(path, key) is not None

    @staticmethod
    def _serialize(value: PropertyValue) -> str:
        if isinstance(value, datetime):
            return format_timestamp(value)
        if isinstance(value, Enum):
            return str(value.value)
        return str(value)

    def set(self, path: str, key: BlackDuckProperty | str, value: PropertyValue) -> None:
        serialized = self._serialize(value)
        self.host.set_property(path, str(key), serialized)
        logger.debug('Set property', path=path, key=str(key), value=serialized)

    def set_many(self, path: str, values: dict[BlackDuckProperty, PropertyValue]) -> None:
        with self.lock(path):
            for key, value in values.items():
                self.set(path, key, value)

    def delete(self, path: str, key: BlackDuckProperty | str) -> None:
        self.host.delete_property(path, str(key))
        logger.debug('Deleted property', path=path, key=str(key))

    def delete_all(self, path: str, keys: list[BlackDuckProperty] | None = None) -> None:
        """Delete the listed keys, or every `blackduck.` property when none are given."""
        with self.lock(path):
            if keys is None:
                self.host.delete_all_properties(path, PROPERTY_PREFIX)
            else:
                for key in keys:
                    self.delete(path, key)

    def increment(self, path: str, key: BlackDuckProperty | str) -> int:
        with self.lock(path):
            value = (self.get_int(path, key) or 0) + 1
            self.set(path, key, value)
            return value

    def find_paths(self, repo_keys: list[str], properties: dict[BlackDuckProperty, PropertyValue | None]) -> list[str]:
        """Artifacts in `repo_keys` carrying all given properties (None matches any value)."""
        if not repo_keys:
            return []
        criteria = {
            str(key): None if value is None else self._serialize(value)
            for key, value in properties.items()
        }
        return self.host.search_by_properties(repo_keys, criteria)
