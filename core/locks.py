"""
並發控制工具

提供 Database-level 的鎖定機制，防止競態條件（Race Condition）

主要使用 PostgreSQL 的 SELECT ... FOR UPDATE 來實現悲觀鎖（Pessimistic Locking）
SQLite 不支援 FOR UPDATE，改由 database.build_engine 的 BEGIN IMMEDIATE 序列化寫入
"""
from sqlalchemy.orm import Session, Query

from models import Room, Player


def with_room_lock_by_code(code: str, db: Session) -> Query:
    """
    以房間代碼鎖定一個 Room（行級鎖）

    使用場景：
    - join_room / delete_room 等以 code 找房間的操作
    - 需要確保 Room 在整個 transaction 期間不被其他請求修改

    範例：
        room = with_room_lock_by_code(code, db).first()
        if not room:
            return None
        room.in_progress = True
        db.commit()

    注意：
        - nowait=False 表示如果鎖被佔用，會等待
        - 必須在 transaction 內使用（確保有 commit 或 rollback）
    """
    return db.query(Room).filter(
        Room.code == code
    ).with_for_update(nowait=False)


def with_room_lock_by_owner(owner_id: str, db: Session) -> Query:
    """
    以房主 ID 鎖定其擁有的 Room

    使用場景：
    - start_game / end_game（房主操作，不需要知道房間代碼）
    """
    return db.query(Room).filter(
        Room.owner_id == owner_id
    ).with_for_update(nowait=False)


def with_room_lock_by_player(user_id: str, db: Session) -> Query:
    """
    以玩家 ID 鎖定其所在的 Room

    使用場景：
    - leave_room（玩家離開時不需要知道房間代碼）

    注意：
        - of=Room 只鎖 rooms 的列，玩家列由 cascade 一起更新
    """
    return db.query(Room).join(Room.players).filter(
        Player.user_id == user_id
    ).with_for_update(nowait=False, of=Room)
