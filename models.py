"""
資料庫模型

rooms：一個房間一列，code 與 owner_id 都是唯一的
room_players：玩家名單，user_id 與 username 全系統唯一（一個使用者同時只能在一個房間）
"""
from sqlalchemy import Column, String, Integer, Float, Boolean, ForeignKey
from sqlalchemy.orm import relationship

from database import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(6), nullable=False, unique=True, index=True)
    owner_id = Column(String(64), nullable=False, unique=True, index=True)
    owner_username = Column(String(64), nullable=False)
    werewolf_ratio = Column(Float, nullable=False, default=0.25)
    owner_is_playing = Column(Boolean, nullable=False, default=True)
    in_progress = Column(Boolean, nullable=False, default=False)

    players = relationship(
        "Player",
        back_populates="room",
        cascade="all, delete-orphan",
        order_by="Player.position"
    )


class Player(Base):
    __tablename__ = "room_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    room_id = Column(Integer, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    role = Column(String(16), nullable=False, default="")
    position = Column(Integer, nullable=False, default=0)

    room = relationship("Room", back_populates="players")
