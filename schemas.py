"""
API 請求 / 回應模型

使用者 ID 在請求中以 `_id` 傳入（與前端相容），也接受 `user_id`
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from core.room_state import GameSettings, PlayerState


class UserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="_id", min_length=1)


class UserWithNameRequest(UserRequest):
    username: str = Field(min_length=1, max_length=64)


class StartGameRequest(UserRequest):
    settings: GameSettings


class CreateRoomResponse(BaseModel):
    room_code: str


class RoomResponse(BaseModel):
    code: str
    owner_id: str
    owner_username: str
    settings: GameSettings
    in_progress: bool
    players: List[PlayerState]


class MessageResponse(BaseModel):
    message: str

