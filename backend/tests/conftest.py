"""
Pytest fixtures for cardroom backend tests.

Provides test database setup, player and session factories, and test client.
"""

import pytest

from cardroom import create_app
from cardroom.config import TestConfig
from cardroom.extensions import db
from cardroom.services import player_service, session_service


# Opening stock used by most tests: 50 x ₹100 + 20 x ₹500 = ₹15,000
OPENING_CHIPS = {"chips_100": 50, "chips_500": 20}
OWNER_FLOAT = 100000


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_player(db_session):
    """Factory: register a player with an optional credit limit."""
    def _make(name="Player", credit_limit=0, phone_number=None):
        return player_service.create_player(name, phone_number=phone_number, credit_limit=credit_limit)
    return _make


@pytest.fixture(scope='function')
def open_session(db_session):
    """Open today's session with ₹1,00,000 float and the standard chip stock."""
    result = session_service.open_session(OWNER_FLOAT, chip_inventory=OPENING_CHIPS, actor_user_id=1)
    return session_service.get_session(result["session"]["id"])


@pytest.fixture(scope='function')
def player_a(make_player):
    return make_player("Player A", credit_limit=20000, phone_number="9800000001")


@pytest.fixture(scope='function')
def player_b(make_player):
    return make_player("Player B", credit_limit=20000, phone_number="9800000002")
