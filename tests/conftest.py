"""
Shared test fixtures for SchoolDash.
Every fixture runs against a fixed clock so recency rules are deterministic.
Zero network calls, all data built in memory or read from local fixtures.
"""
import os
from datetime import datetime

import pytest

from schooldash import store as actions
from schooldash.config import config
from schooldash.demo_data import build_demo_data

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")

NOW = datetime(2025, 3, 14, 12, 0, 0)


@pytest.fixture
def fixtures_dir():
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def read_fixture():
    """Read a fixture file as text."""
    def _read(name):
        with open(os.path.join(FIXTURES_DIR, name), encoding="utf-8") as fh:
            return fh.read()
    return _read


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def store():
    """An empty store with the default subject catalog."""
    return actions.Store()


@pytest.fixture
def demo_payload():
    return build_demo_data(now=NOW)


@pytest.fixture
def demo_store(demo_payload):
    """A store seeded with the demo dataset built around NOW."""
    s = actions.Store()
    s.dispatch(actions.LOAD_INITIAL_DATA, demo_payload)
    return s


@pytest.fixture
def demo_state(demo_store):
    return demo_store.state


@pytest.fixture
def sample_assessment():
    return {
        "id": "asm-1",
        "title": "Spelling Quiz",
        "subject": "English",
        "class_id": "cls-1",
        "type": "quiz",
        "total_marks": 20,
        "weight": 10,
        "due_date": "2025-03-10T09:00:00",
        "instructions": "",
        "created_at": "2025-03-01T09:00:00",
        "created_by": "1",
    }


@pytest.fixture
def restore_config():
    """Snapshot the shared config and put it back after the test."""
    saved = config.to_dict()
    yield config
    config.update(saved)


@pytest.fixture
def app(restore_config):
    """Flask app over a demo-seeded store; the analysis delay is disabled."""
    from schooldash.app import create_app

    restore_config.update({"analysis_delay": 0})
    flask_app = create_app(load_demo=True)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def empty_app(restore_config):
    from schooldash.app import create_app

    restore_config.update({"analysis_delay": 0})
    flask_app = create_app(load_demo=False)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    return app.extensions["schooldash_store"]
