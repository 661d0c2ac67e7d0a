"""Shared fixtures: a fresh SQLite file database per test."""

import random

import pytest
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine
import models  # noqa: F401
from core.room_store import RoomStore
from core.room_lifecycle import RoomLifecycle


@pytest.fixture
def engine(tmp_path):
    """Engine bound to a temporary database file."""
    engine = build_engine(f"sqlite:///{tmp_path / 'rooms.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return RoomStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def lifecycle(store):
    return RoomLifecycle(store, rng=random.Random(1234))


@pytest.fixture
def room_with_players(lifecycle):
    """Room owned by owner1 (Alice) with three players in the lobby."""
    room = lifecycle.create_room("owner1", "Alice")
    for user_id, username in [("p1", "Bob"), ("p2", "Carol"), ("p3", "Dave")]:
        lifecycle.join_room(room.code, user_id, username)
    return lifecycle.store.find_by_code(room.code)
