"""Tests for the SQLAlchemy room store."""

import logging

import pytest

from core.room_state import RoomState, PlayerState, GameSettings
from core.exceptions import (
    MembershipConflict,
    OwnerAlreadyHasRoom,
    GameInProgress
)


def new_room(code="ABC123", owner_id="owner1", owner_username="Alice"):
    return RoomState(code=code, owner_id=owner_id, owner_username=owner_username)


def add(user_id, username):
    def mutator(room):
        return room.model_copy(update={
            "players": room.players + (PlayerState(user_id=user_id, username=username),)
        })
    return mutator


class TestInsertAndFind:

    def test_insert_returns_persisted_room(self, store):
        room = store.insert(new_room())

        assert room.code == "ABC123"
        assert room.owner_id == "owner1"
        assert room.in_progress is False
        assert room.players == ()
        assert room.settings == GameSettings()

    def test_insert_duplicate_code_returns_none(self, store):
        store.insert(new_room())
        assert store.insert(new_room(owner_id="owner2", owner_username="Zed")) is None

    def test_insert_duplicate_owner_raises(self, store):
        store.insert(new_room())
        with pytest.raises(OwnerAlreadyHasRoom):
            store.insert(new_room(code="XYZ789"))

    def test_find_by_code_and_owner(self, store):
        store.insert(new_room())

        assert store.find_by_code("ABC123").owner_id == "owner1"
        assert store.find_by_owner("owner1").code == "ABC123"
        assert store.find_by_code("NOPE00") is None
        assert store.find_by_owner("nobody") is None

    def test_find_by_player(self, store):
        store.insert(new_room())
        store.update_by_code("ABC123", add("p1", "Bob"))

        assert store.find_by_player_id("p1").code == "ABC123"
        assert store.find_by_player_username("Bob").code == "ABC123"
        assert store.find_by_player_id("p2") is None
        assert store.find_by_player_username("Carol") is None


class TestUpdate:

    def test_update_missing_room_returns_none(self, store):
        assert store.update_by_code("NOPE00", add("p1", "Bob")) is None
        assert store.update_by_owner("nobody", add("p1", "Bob")) is None
        assert store.update_by_player_id("ghost", add("p1", "Bob")) is None

    def test_roster_order_preserved(self, store):
        store.insert(new_room())
        for user_id, username in [("p1", "Bob"), ("p2", "Carol"), ("p3", "Dave")]:
            store.update_by_code("ABC123", add(user_id, username))

        assert store.find_by_code("ABC123").player_ids == ["p1", "p2", "p3"]

    def test_update_by_player_removes_player(self, store):
        store.insert(new_room())
        store.update_by_code("ABC123", add("p1", "Bob"))
        store.update_by_code("ABC123", add("p2", "Carol"))

        room = store.update_by_player_id("p1", lambda r: r.model_copy(update={
            "players": tuple(p for p in r.players if p.user_id != "p1")
        }))

        assert room.player_ids == ["p2"]
        assert store.find_by_player_id("p1") is None

    def test_update_by_owner_writes_settings_and_roles(self, store):
        store.insert(new_room())
        store.update_by_code("ABC123", add("p1", "Bob"))

        settings = GameSettings(werewolf_ratio=0.5, owner_is_playing=False)
        room = store.update_by_owner("owner1", lambda r: r.model_copy(update={
            "settings": settings,
            "in_progress": True,
            "players": tuple(p.model_copy(update={"role": "Werewolf"}) for p in r.players)
        }))

        assert room.settings == settings
        assert room.in_progress is True
        assert room.players[0].role == "Werewolf"
        assert store.find_by_code("ABC123") == room

    def test_rejecting_mutator_writes_nothing(self, store):
        store.insert(new_room())

        def reject(room):
            raise GameInProgress(room.code)

        with pytest.raises(GameInProgress):
            store.update_by_code("ABC123", reject)
        assert store.find_by_code("ABC123").players == ()

    def test_rejection_is_not_logged_as_failed_transaction(self, store, caplog):
        store.insert(new_room())

        def reject(room):
            raise GameInProgress(room.code)

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(GameInProgress):
                store.update_by_code("ABC123", reject)

        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert any("rejected" in r.getMessage() for r in caplog.records if r.name == "core.room_store")

    def test_duplicate_owner_insert_is_not_logged_as_failed_transaction(self, store, caplog):
        store.insert(new_room())

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(OwnerAlreadyHasRoom):
                store.insert(new_room(code="XYZ789"))

        assert not [r for r in caplog.records if r.name == "database"]

    def test_player_in_two_rooms_rejected(self, store):
        store.insert(new_room())
        store.insert(new_room(code="XYZ789", owner_id="owner2", owner_username="Zed"))
        store.update_by_code("ABC123", add("p1", "Bob"))

        with pytest.raises(MembershipConflict):
            store.update_by_code("XYZ789", add("p1", "Robert"))
        with pytest.raises(MembershipConflict):
            store.update_by_code("XYZ789", add("p9", "Bob"))
        assert store.find_by_code("XYZ789").players == ()


class TestDelete:

    def test_delete_returns_removed_room(self, store):
        store.insert(new_room())
        store.update_by_code("ABC123", add("p1", "Bob"))

        removed = store.delete_by_code("ABC123")

        assert removed.code == "ABC123"
        assert removed.player_ids == ["p1"]
        assert store.find_by_code("ABC123") is None
        assert store.find_by_player_id("p1") is None

    def test_delete_missing_returns_none(self, store):
        assert store.delete_by_code("NOPE00") is None


class TestSnapshot:

    def test_find_player_and_player_ids(self, store):
        store.insert(new_room())
        store.update_by_code("ABC123", add("p1", "Bob"))
        store.update_by_code("ABC123", add("p2", "Carol"))
        room = store.find_by_code("ABC123")

        assert room.find_player("p2") == PlayerState(user_id="p2", username="Carol")
        assert room.find_player("ghost") is None
        assert room.player_ids == ["p1", "p2"]
        assert room.has_username("Bob")
        assert not room.has_username("Dave")
