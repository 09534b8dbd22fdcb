"""
Shared fixtures for mutation pipeline tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.mutations.builders import (
    build_add_member_to_team_change,
    build_task_assign_change,
)
from shared.odoo.client import OdooClient
from shared.odoo.config import OdooSettings
from shared.queue.memory_queue import InMemoryMutationQueue


@pytest.fixture
def odoo_settings():
    """Create Odoo settings with a static uid so no network is needed."""
    return OdooSettings(
        url="http://odoo.test",
        database="planboard",
        username="bot@example.com",
        api_key="secret-key",
        user_id=2,
    )


@pytest.fixture
def odoo_client(odoo_settings):
    """Create a real client; payload building never touches the network."""
    return OdooClient(odoo_settings)


@pytest.fixture
def mock_odoo_client():
    """Create a mock Odoo client for live reads."""
    client = MagicMock(spec=OdooClient)
    client.fetch_current_state = AsyncMock(return_value=[])
    return client


@pytest.fixture
def memory_queue():
    """Create an in-memory mutation queue."""
    return InMemoryMutationQueue(name="test-queue")


@pytest.fixture
def assign_change():
    """Assign task 42 (project 5) to member 7."""
    return build_task_assign_change(
        "session-1",
        {"id": 42, "project_id": [5, "Website"], "user_ids": []},
        {"id": 7, "name": "Ada"},
        change_id="a1",
    )


@pytest.fixture
def team_change():
    """Add member 7 to the team of project 5."""
    return build_add_member_to_team_change(
        "session-1",
        {"id": 7, "name": "Ada"},
        [5],
        change_id="t1",
    )
