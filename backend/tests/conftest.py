"""Pytest configuration with fixtures for async testing."""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.permissions import RequestContext


# ---------------------------------------------------------------------------
# Test Data Factories (using MagicMock for SQLAlchemy 2.0 compatibility)
# ---------------------------------------------------------------------------


def _make_mock(defaults: dict[str, Any], overrides: dict[str, Any]) -> MagicMock:
    """Create a MagicMock with given attributes."""
    merged = {**defaults, **overrides}
    mock = MagicMock()
    for k, v in merged.items():
        setattr(mock, k, v)
    return mock


class AssemblyCardFactory:
    """Factory for creating AssemblyCard instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        now = datetime.now(timezone.utc)
        defaults = {
            "id": uuid.uuid4(),
            "card_number": f"M{cls._counter}",
            "name": f"Test Card {cls._counter}",
            "type": "M",
            "phase": 1,
            "priority": "B",
            "duration": 4.0,
            "position": 0,
            "grounded": False,
            "assigned_to": None,
            "assigned_material_handler": None,
            "status": "scheduled",
            "previous_status": None,
            "dependencies": [],
            "precedents": [],
            "start_time": None,
            "end_time": None,
            "last_resumed_at": None,
            "elapsed_time": 0,
            "picking_start_time": None,
            "actual_duration": None,
            "pick_due_date": None,
            "phase_cleared_to_build_date": None,
            "sub_assy_area": None,
            "gemba_doc_link": None,
            "assembly_seq": None,
            "material_seq": None,
            "operation_seq": None,
            "created_at": now,
            "updated_at": now,
        }
        return _make_mock(defaults, overrides)


class AssemblerFactory:
    """Factory for creating Assembler instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        defaults = {
            "id": uuid.uuid4(),
            "name": f"Assembler {cls._counter}",
            "type": "mechanical",
            "machine_type": None,
            "machine_number": None,
            "status": "available",
            "assigned_user": None,
            "created_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class UserFactory:
    """Factory for creating User instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        defaults = {
            "id": uuid.uuid4(),
            "name": f"User {cls._counter}",
            "email": f"user{cls._counter}@shopfloor.local",
            "role": "scheduler",
            "created_at": datetime.now(timezone.utc),
        }
        return _make_mock(defaults, overrides)


class AndonIssueFactory:
    """Factory for creating AndonIssue instances for testing."""

    _counter = 0

    @classmethod
    def create(cls, **overrides: Any) -> MagicMock:
        cls._counter += 1
        now = datetime.now(timezone.utc)
        defaults = {
            "id": cls._counter,
            "issue_number": f"AI-{cls._counter:03d}",
            "assembly_card_number": "M4",
            "description": "Missing fasteners",
            "photo_path": None,
            "submitted_by": "Jordan Builder",
            "assigned_to": None,
            "status": "unresolved",
            "created_at": now,
            "updated_at": now,
        }
        return _make_mock(defaults, overrides)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def card_factory():
    """Provide AssemblyCardFactory for tests."""
    AssemblyCardFactory._counter = 0
    return AssemblyCardFactory


@pytest.fixture
def assembler_factory():
    """Provide AssemblerFactory for tests."""
    AssemblerFactory._counter = 0
    return AssemblerFactory


@pytest.fixture
def user_factory():
    """Provide UserFactory for tests."""
    UserFactory._counter = 0
    return UserFactory


@pytest.fixture
def andon_factory():
    """Provide AndonIssueFactory for tests."""
    AndonIssueFactory._counter = 0
    return AndonIssueFactory


@pytest.fixture
def mock_db():
    """Provide a mock AsyncSession for unit tests."""
    session = AsyncMock(spec=AsyncSession)
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()

    @asynccontextmanager
    async def _savepoint():
        yield MagicMock()

    session.begin_nested = MagicMock(side_effect=lambda: _savepoint())
    return session


@pytest.fixture
def scalars_result():
    """Build a mock execute() result whose scalars().all() returns ``rows``."""

    def _make(rows: list) -> MagicMock:
        result = MagicMock()
        result.scalars.return_value.all.return_value = rows
        return result

    return _make


@pytest.fixture
def admin_ctx() -> RequestContext:
    return RequestContext(user_id="admin-1", role="admin")


@pytest.fixture
def assembler_ctx() -> RequestContext:
    return RequestContext(user_id="builder-1", role="assembler")
