"""
Persisted config overrides.
"""
from datetime import datetime
from ..extensions import db


class SystemConfig(db.Model):
    """
    One row per overridden config key.

    The value is stored serialized (JSON text); the declared type lives in
    the compiled-in catalog, not in this table. Rows are upserted, no history.
    """
    __tablename__ = 'system_configs'

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(100), unique=True, nullable=False, index=True)  # 'points.spendPerPoint'
    value = db.Column(db.Text, nullable=False)
    description = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<SystemConfig {self.key}>'
