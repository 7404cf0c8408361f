"""
Persistence for config overrides (system_configs table).

Keeps SQLAlchemy out of the registry: every database failure is rolled back
and surfaced as PersistenceUnavailableError, which the registry treats as
"use defaults" on read and as a hard failure on write.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.system_config import SystemConfig
from ..utils.exceptions import PersistenceUnavailableError

logger = logging.getLogger(__name__)


class SystemConfigStore:
    """
    Repository over SystemConfig rows.

    Usage:
        store = SystemConfigStore()
        rows = store.load_all()
        store.upsert_many([('points.spendPerPoint', '25', '消费积分比例')])
    """

    def load_all(self) -> List[SystemConfig]:
        """Full scan, used only when (re)building the registry cache."""
        try:
            return SystemConfig.query.order_by(SystemConfig.key).all()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceUnavailableError(
                f'Failed to load config overrides: {e}', original_error=e
            )

    def get(self, key: str) -> Optional[SystemConfig]:
        try:
            return SystemConfig.query.filter_by(key=key).first()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceUnavailableError(
                f'Failed to read config "{key}": {e}', original_error=e
            )

    def upsert_many(self, items: Iterable[Tuple[str, str, Optional[str]]]) -> Dict[str, datetime]:
        """
        Update or insert several rows in a single transaction.

        Args:
            items: (key, serialized value, description) tuples

        Returns:
            Dict of key -> updated_at written for that row. Timestamps are
            taken before the commit so callers never reload expired rows.
        """
        updated = {}
        now = datetime.utcnow()
        try:
            for key, value, description in items:
                row = self.get(key)
                if row:
                    row.value = value
                else:
                    row = SystemConfig(key=key, value=value, description=description or key, created_at=now)
                    db.session.add(row)
                row.updated_at = now
                updated[key] = now
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceUnavailableError(
                f'Failed to save config overrides: {e}', original_error=e
            )
        return updated

    def insert_missing(self, items: Iterable[Tuple[str, str, Optional[str]]]) -> List[str]:
        """
        Insert rows only for keys that have none yet.

        Returns:
            Keys that were inserted
        """
        inserted = []
        try:
            existing = {key for (key,) in db.session.query(SystemConfig.key).all()}
            for key, value, description in items:
                if key in existing:
                    continue
                db.session.add(SystemConfig(key=key, value=value, description=description or key))
                inserted.append(key)
            db.session.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise PersistenceUnavailableError(
                f'Failed to initialize default configs: {e}', original_error=e
            )
        return inserted

    def _rollback(self):
        try:
            db.session.rollback()
        except SQLAlchemyError as e:
            logger.error('[ConfigStore] Rollback failed: %s', e)
