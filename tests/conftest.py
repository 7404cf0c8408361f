"""
Shared pytest fixtures.

Every test gets a fresh app on an in-memory SQLite database with the
testing config (NullCache, fixed admin token). The app context stays
pushed for the whole test, so services and models can be used directly.
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from teashop import create_app
from teashop.extensions import db
from teashop.models import Member
from teashop.services.config_service import ConfigRegistry, get_registry
from teashop.services.points_rules import PointsRulesService
from teashop.utils.exceptions import PersistenceUnavailableError

ADMIN_TOKEN = 'test-admin-token'


@pytest.fixture
def app():
    """Flask app with tables created."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {
        'X-Admin-Token': ADMIN_TOKEN,
        'Content-Type': 'application/json',
    }


@pytest.fixture
def registry(app) -> ConfigRegistry:
    """The app's registry (SQLAlchemy-backed store)."""
    return get_registry()


@pytest.fixture
def points_service(registry) -> PointsRulesService:
    return PointsRulesService(registry)


@pytest.fixture
def failing_store():
    """Store whose every operation fails as if the database were down."""
    store = MagicMock()
    error = PersistenceUnavailableError('database is down')
    store.load_all.side_effect = error
    store.get.side_effect = error
    store.upsert_many.side_effect = error
    store.insert_missing.side_effect = error
    return store


@pytest.fixture
def sample_member(app):
    """A normal-tier member with no spend yet."""
    member = Member(
        name='Anna Petrova',
        phone='+79990001122',
        member_level='normal',
        total_spent=Decimal('0'),
        points_balance=0,
    )
    db.session.add(member)
    db.session.commit()
    return member
