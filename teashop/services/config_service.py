"""
Config Registry.

Single source of truth for runtime-tunable settings (brand, points,
delivery, ...). Resolves every catalog key to its persisted override or its
catalog default, and isolates callers from persistence details.

Lifecycle of the resolved-value cache:
1. Empty at startup; get() answers with catalog defaults
2. initialize() loads all overrides (storage down -> defaults, degraded=True)
3. set()/set_many()/reset() write through after the store commits
4. refresh() clears and reloads, e.g. after manual database edits

One registry instance is created per Flask app (app.extensions) and reached
through get_registry(); tests build their own with a fake store.
"""
import copy
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from flask import current_app

from .config_catalog import (
    CONFIG_DEFINITIONS,
    ConfigCategory,
    ConfigDefinition,
    coerce_value,
    deserialize_value,
    serialize_value,
)
from .config_store import SystemConfigStore
from ..utils.exceptions import (
    PersistenceUnavailableError,
    TypeCoercionError,
    UnknownConfigKeyError,
    ValidationError,
)

logger = logging.getLogger(__name__)

REGISTRY_EXTENSION_KEY = 'config_registry'


@dataclass
class ConfigItem:
    """Catalog entry merged with its resolved value, for presentation."""
    definition: ConfigDefinition
    value: Any
    updated_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return self.definition.key

    @property
    def category(self) -> ConfigCategory:
        return self.definition.category

    def to_dict(self) -> Dict[str, Any]:
        data = self.definition.to_dict()
        data['value'] = self.value
        data['updatedAt'] = self.updated_at.isoformat() if self.updated_at else None
        return data


def _copy(value):
    # Resolved dicts/lists are shared with the cache
    if isinstance(value, (dict, list)):
        return copy.deepcopy(value)
    return value


class ConfigRegistry:
    """
    Typed key/value settings backed by the system_configs table.

    Usage:
        registry = ConfigRegistry(SystemConfigStore())
        registry.get_loaded('points.spendPerPoint', 30)
        registry.set('brand.name', 'CHU TEA Moscow')
    """

    def __init__(self, store=None, definitions: List[ConfigDefinition] = None):
        self.store = store if store is not None else SystemConfigStore()
        self._definitions: Dict[str, ConfigDefinition] = {
            d.key: d for d in (definitions if definitions is not None else CONFIG_DEFINITIONS)
        }
        self._cache: Dict[str, Any] = {}
        self._updated_at: Dict[str, datetime] = {}
        self._initialized = False
        self._init_lock = threading.Lock()
        self.degraded = False
        self.last_loaded_at: Optional[datetime] = None
        self._validators: List[Tuple[frozenset, Callable]] = []

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def definitions(self) -> List[ConfigDefinition]:
        return list(self._definitions.values())

    # ==================== Loading ====================

    def initialize(self) -> None:
        """
        Load persisted overrides into the cache.

        No-op when already initialized. Concurrent first callers wait for the
        one in-flight load instead of loading twice.
        """
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            self._load()

    def refresh(self) -> None:
        """Drop every cached value and reload from storage."""
        with self._init_lock:
            self._initialized = False
            self._cache = {}
            self._updated_at = {}
            self.degraded = False
            self._load()
        logger.info('[ConfigRegistry] Cache refreshed')

    def _load(self) -> None:
        cache = {key: copy.deepcopy(d.default) for key, d in self._definitions.items()}
        updated_at = {}

        try:
            rows = self.store.load_all()
        except PersistenceUnavailableError as e:
            logger.warning(
                '[ConfigRegistry] Storage unavailable, serving catalog defaults (degraded mode): %s',
                e.message
            )
            self.degraded = True
            rows = []

        loaded = 0
        for row in rows:
            definition = self._definitions.get(row.key)
            if definition is None:
                logger.debug('[ConfigRegistry] Ignoring unknown stored key %s', row.key)
                continue
            if not row.value:
                continue
            try:
                cache[row.key] = deserialize_value(definition, row.value)
            except TypeCoercionError:
                logger.warning(
                    '[ConfigRegistry] Stored value for %s is not a valid %s, using default',
                    row.key, definition.value_type.value
                )
                continue
            updated_at[row.key] = row.updated_at
            loaded += 1

        self._cache = cache
        self._updated_at = updated_at
        self.last_loaded_at = datetime.utcnow()
        self._initialized = True

        if not self.degraded:
            logger.info('[ConfigRegistry] Loaded %d config overrides from database', loaded)

    # ==================== Reads ====================

    def get(self, key: str, fallback: Any = None) -> Any:
        """
        Resolve a value without ever touching storage.

        Before initialization this answers with the catalog default. Unknown
        keys always return fallback.
        """
        definition = self._definitions.get(key) if isinstance(key, str) else None
        if definition is None:
            return fallback
        if not self._initialized:
            return _copy(definition.default)
        return _copy(self._cache.get(key, fallback))

    def get_loaded(self, key: str, fallback: Any = None) -> Any:
        """Like get(), but loads overrides first if that has not happened yet."""
        self.initialize()
        return self.get(key, fallback)

    def get_definition(self, key: str) -> ConfigDefinition:
        """
        Raises:
            UnknownConfigKeyError: If key is not in the catalog
        """
        definition = self._definitions.get(key) if isinstance(key, str) else None
        if definition is None:
            raise UnknownConfigKeyError(key)
        return definition

    def get_item(self, key: str) -> ConfigItem:
        definition = self.get_definition(key)
        self.initialize()
        return ConfigItem(definition, self.get(key), self._updated_at.get(key))

    def list_all(self) -> List[ConfigItem]:
        """Every catalog entry with its resolved value, in catalog order."""
        self.initialize()
        return [
            ConfigItem(d, self.get(d.key), self._updated_at.get(d.key))
            for d in self._definitions.values()
        ]

    def list_by_category(self, category) -> List[ConfigItem]:
        """
        Raises:
            ValidationError: If category is not a known ConfigCategory
        """
        try:
            category = ConfigCategory(category)
        except ValueError:
            raise ValidationError(f'Unknown config category "{category}"', field='category')
        return [item for item in self.list_all() if item.category == category]

    def status(self) -> Dict[str, Any]:
        """Operational view; degraded=True means storage failed at load time."""
        return {
            'initialized': self._initialized,
            'degraded': self.degraded,
            'cached_keys': len(self._cache),
            'last_loaded_at': self.last_loaded_at.isoformat() if self.last_loaded_at else None,
        }

    # ==================== Writes ====================

    def set(self, key: str, value: Any) -> Any:
        """
        Coerce, persist and cache a new value for key.

        Returns:
            The coerced value

        Raises:
            UnknownConfigKeyError: key is not in the catalog
            TypeCoercionError: value does not fit the declared type
            ValidationError: a registered write validator rejected the value
            PersistenceUnavailableError: storage rejected the write (cache untouched)
        """
        self.get_definition(key)
        return self.set_many({key: value})[key]

    def add_validator(self, keys: Iterable[str], validator: Callable[['ConfigRegistry', Dict[str, Any]], None]) -> None:
        """
        Register a check for writes that touch any of keys.

        The validator is called with the registry and the coerced pending
        values before anything is persisted; raising aborts the write.
        """
        self._validators.append((frozenset(keys), validator))

    def set_many(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write several keys in one transaction.

        Every value is coerced and validated before anything is persisted,
        and the cache is updated only after the store commits, so a failure
        leaves both storage and cache as they were.
        """
        coerced = {}
        for key, value in values.items():
            definition = self.get_definition(key)
            coerced[key] = coerce_value(definition, value)

        self.initialize()

        for keys, validator in self._validators:
            if keys.intersection(coerced):
                validator(self, coerced)

        items = []
        for key, value in coerced.items():
            definition = self._definitions[key]
            items.append((key, serialize_value(value, key, definition.value_type.value), definition.name))

        updated_at = self.store.upsert_many(items)

        for key, value in coerced.items():
            self._cache[key] = copy.deepcopy(value)
            self._updated_at[key] = updated_at.get(key) or datetime.utcnow()
            logger.info('[ConfigRegistry] %s updated', key)

        return {key: _copy(value) for key, value in coerced.items()}

    def reset(self, key: str) -> Any:
        """Restore the catalog default through the normal write path."""
        definition = self.get_definition(key)
        return self.set(key, copy.deepcopy(definition.default))

    def init_defaults(self) -> List[str]:
        """
        Persist the default for every catalog key without a row.

        Resolved values do not change; the point is to make every key
        visible in the table for manual editing.

        Returns:
            Keys that were inserted
        """
        inserted = self.store.insert_missing([
            (d.key, serialize_value(d.default), d.name)
            for d in self._definitions.values()
        ])
        now = datetime.utcnow()
        for key in inserted:
            self._updated_at.setdefault(key, now)
        logger.info('[ConfigRegistry] Default configs initialized (%d inserted)', len(inserted))
        return inserted


def init_registry(app, store=None) -> ConfigRegistry:
    """Attach a fresh registry to the Flask app."""
    from .points_rules import RULE_KEYS, check_rules_write

    registry = ConfigRegistry(store)
    # points.* keys are only written as a valid rule set, whatever the caller
    registry.add_validator(RULE_KEYS.values(), check_rules_write)
    app.extensions[REGISTRY_EXTENSION_KEY] = registry
    return registry


def get_registry() -> ConfigRegistry:
    """Registry of the current Flask app."""
    return current_app.extensions[REGISTRY_EXTENSION_KEY]
