"""Concurrent callers against the same store."""

from concurrent.futures import ThreadPoolExecutor

from core.room_state import GameSettings, Role
from core.exceptions import (
    RoomLifecycleError,
    ConflictError,
    InvalidStateError,
    UsernameTaken
)
from services.role_service import werewolf_count


def run_all(calls, workers=8):
    """Run callables concurrently; return (results, errors)."""
    results, errors = [], []

    def wrap(call):
        try:
            return call(), None
        except RoomLifecycleError as e:
            return None, e

    with ThreadPoolExecutor(max_workers=workers) as pool:
        for result, error in pool.map(wrap, calls):
            if error is None:
                results.append(result)
            else:
                errors.append(error)
    return results, errors


class TestConcurrentCreate:

    def test_distinct_owners_get_distinct_codes(self, lifecycle):
        calls = [lambda i=i: lifecycle.create_room(f"owner{i}", f"Owner{i}") for i in range(16)]
        rooms, errors = run_all(calls)

        assert errors == []
        assert len({room.code for room in rooms}) == 16

    def test_same_owner_creates_once(self, lifecycle, store):
        calls = [lambda: lifecycle.create_room("owner1", "Alice") for _ in range(8)]
        rooms, errors = run_all(calls)

        assert len(rooms) == 1
        assert all(isinstance(e, ConflictError) for e in errors)
        assert store.find_by_owner("owner1").code == rooms[0].code


class TestConcurrentJoin:

    def test_duplicate_username_across_rooms(self, lifecycle):
        codes = [lifecycle.create_room(f"owner{i}", f"Owner{i}").code for i in range(4)]
        calls = [
            lambda i=i: lifecycle.join_room(codes[i % 4], f"p{i}", "Bob")
            for i in range(12)
        ]
        joined, errors = run_all(calls)

        assert len(joined) == 1
        assert all(isinstance(e, UsernameTaken) for e in errors)
        total = sum(len(lifecycle.get_players(code)) for code in codes)
        assert total == 1

    def test_join_racing_start_never_leaves_roleless_player(self, room_with_players, lifecycle, store):
        code = room_with_players.code
        settings = GameSettings(werewolf_ratio=0.25, owner_is_playing=False)

        calls = [lambda i=i: lifecycle.join_room(code, f"late{i}", f"Late{i}") for i in range(12)]
        calls.insert(6, lambda: lifecycle.start_game("owner1", settings))
        _, errors = run_all(calls)

        assert all(isinstance(e, InvalidStateError) for e in errors)

        room = store.find_by_code(code)
        assert room.in_progress is True
        assert all(p.role in (Role.WEREWOLF.value, Role.VILLAGER.value) for p in room.players)
        wolves = sum(1 for p in room.players if p.role == Role.WEREWOLF.value)
        assert wolves == werewolf_count(len(room.players), 0.25)
        assert len(room.players) == 3 + 12 - len(errors)
