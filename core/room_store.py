"""
Room Store：以 SQLAlchemy 保存房間

每個公開方法都使用獨立的 session 與 transaction。

update_by_* 是 RoomLifecycle 依賴的序列化單位：
1. 鎖定房間 row
2. 把當下的快照交給 mutator（純函式）
3. 把 mutator 回傳的快照寫回，然後 commit

mutator 以拋出 RoomLifecycleError 拒絕變更，此時 rollback，不寫入任何資料。
業務規則拒絕在這一層處理，不會進入 @transactional 的錯誤紀錄。
"""
from typing import Callable, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import SessionLocal, transactional
from models import Room, Player
from core.room_state import RoomState
from core.locks import (
    with_room_lock_by_code,
    with_room_lock_by_owner,
    with_room_lock_by_player
)
from core.exceptions import RoomLifecycleError, MembershipConflict, OwnerAlreadyHasRoom

logger = logging.getLogger(__name__)

Mutator = Callable[[RoomState], RoomState]


def _snapshot(room: Optional[Room]) -> Optional[RoomState]:
    return RoomState.from_record(room) if room is not None else None


def _write_back(room: Room, state: RoomState) -> None:
    """把快照同步回 ORM row（code 與房主不會變）"""
    room.werewolf_ratio = state.settings.werewolf_ratio
    room.owner_is_playing = state.settings.owner_is_playing
    room.in_progress = state.in_progress

    existing = {p.user_id: p for p in room.players}
    roster = []
    for position, player in enumerate(state.players):
        record = existing.pop(player.user_id, None)
        if record is None:
            record = Player(user_id=player.user_id, username=player.username)
        record.role = player.role
        record.position = position
        roster.append(record)
    # 不在快照內的玩家由 delete-orphan cascade 刪除
    room.players = roster


@transactional
def _insert(db: Session, state: RoomState) -> Optional[RoomState]:
    if db.query(Room.id).filter(Room.code == state.code).first():
        return None

    room = Room(
        code=state.code,
        owner_id=state.owner_id,
        owner_username=state.owner_username,
        werewolf_ratio=state.settings.werewolf_ratio,
        owner_is_playing=state.settings.owner_is_playing,
        in_progress=state.in_progress
    )
    db.add(room)
    db.flush()
    return RoomState.from_record(room)


@transactional
def _commit_update(db: Session, room: Room, state: RoomState) -> RoomState:
    _write_back(room, state)
    db.flush()
    db.expire(room, ["players"])
    return RoomState.from_record(room)


def _update(db: Session, lock_query, key: str, mutator: Mutator) -> Optional[RoomState]:
    room = lock_query(key, db).first()
    if room is None:
        db.rollback()
        return None

    try:
        updated = mutator(RoomState.from_record(room))
    except RoomLifecycleError as e:
        logger.debug(f"Update of room {room.code} rejected: {e}")
        db.rollback()
        raise

    code = room.code
    try:
        return _commit_update(db, room, updated)
    except IntegrityError as e:
        logger.warning(f"Unique constraint rejected roster update for room {code}")
        raise MembershipConflict(f"Roster update for room {code} conflicts with another room") from e


@transactional
def _delete(db: Session, code: str) -> Optional[RoomState]:
    room = with_room_lock_by_code(code, db).first()
    if room is None:
        return None
    state = RoomState.from_record(room)
    db.delete(room)
    return state


class RoomStore:
    """Room Store（SQLAlchemy 實作）"""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    # ---- reads ----

    def find_by_code(self, code: str) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _snapshot(db.query(Room).filter(Room.code == code).first())

    def find_by_owner(self, owner_id: str) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _snapshot(db.query(Room).filter(Room.owner_id == owner_id).first())

    def find_by_player_id(self, user_id: str) -> Optional[RoomState]:
        with self._session_factory() as db:
            room = db.query(Room).join(Room.players).filter(
                Player.user_id == user_id
            ).first()
            return _snapshot(room)

    def find_by_player_username(self, username: str) -> Optional[RoomState]:
        with self._session_factory() as db:
            room = db.query(Room).join(Room.players).filter(
                Player.username == username
            ).first()
            return _snapshot(room)

    # ---- writes ----

    def insert(self, state: RoomState) -> Optional[RoomState]:
        """
        寫入新房間

        返回：
            新房間的快照；代碼已被使用時返回 None

        異常：
            OwnerAlreadyHasRoom: 房主已經擁有其他房間
        """
        with self._session_factory() as db:
            if db.query(Room.id).filter(Room.owner_id == state.owner_id).first():
                raise OwnerAlreadyHasRoom(state.owner_id)
            try:
                return _insert(db, state)
            except IntegrityError:
                if db.query(Room.id).filter(Room.owner_id == state.owner_id).first():
                    raise OwnerAlreadyHasRoom(state.owner_id)
                # 並發建立時代碼先被別人取走
                return None

    def delete_by_code(self, code: str) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _delete(db, code)

    def update_by_code(self, code: str, mutator: Mutator) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _update(db, with_room_lock_by_code, code, mutator)

    def update_by_owner(self, owner_id: str, mutator: Mutator) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _update(db, with_room_lock_by_owner, owner_id, mutator)

    def update_by_player_id(self, user_id: str, mutator: Mutator) -> Optional[RoomState]:
        with self._session_factory() as db:
            return _update(db, with_room_lock_by_player, user_id, mutator)
