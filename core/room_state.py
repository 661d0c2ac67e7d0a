"""
房間快照（Room snapshot）

RoomLifecycle 只處理不可變的快照，不直接碰 ORM 物件：
- RoomStore 讀取資料庫後轉成 RoomState
- mutator 回傳新的 RoomState
- RoomStore 再把新的快照寫回資料庫
"""
import enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Role(str, enum.Enum):
    """遊戲角色"""
    WEREWOLF = "Werewolf"
    VILLAGER = "Villager"


class GameSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    werewolf_ratio: float = Field(default=0.25, gt=0, le=1)
    owner_is_playing: bool = True


class PlayerState(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    user_id: str
    username: str
    role: str = ""


class RoomState(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: str
    owner_id: str
    owner_username: str
    settings: GameSettings = GameSettings()
    in_progress: bool = False
    players: Tuple[PlayerState, ...] = ()

    @classmethod
    def from_record(cls, room) -> "RoomState":
        """從 ORM Room 建立快照（players 已依 position 排序）"""
        return cls(
            code=room.code,
            owner_id=room.owner_id,
            owner_username=room.owner_username,
            settings=GameSettings(
                werewolf_ratio=room.werewolf_ratio,
                owner_is_playing=room.owner_is_playing
            ),
            in_progress=room.in_progress,
            players=tuple(PlayerState.model_validate(p) for p in room.players)
        )

    def find_player(self, user_id: str) -> Optional[PlayerState]:
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def has_username(self, username: str) -> bool:
        return any(p.username == username for p in self.players)

    @property
    def player_ids(self) -> List[str]:
        return [p.user_id for p in self.players]
