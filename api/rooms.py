"""
Room API Endpoints

職責：
1. 建立 / 刪除房間（房主）
2. 加入 / 離開房間（玩家）
3. 開始 / 結束遊戲（房主）
4. 查詢房主、玩家、角色

所有業務邏輯集中在 RoomLifecycle，這裡只負責：
- 請求驗證（pydantic）
- 重複房主 / 重複玩家的前置守衛
- 異常類別 -> HTTP status 的對應
"""
from functools import lru_cache
from typing import List

from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import (
    UserRequest,
    UserWithNameRequest,
    StartGameRequest,
    CreateRoomResponse,
    RoomResponse,
    MessageResponse
)
from core.room_lifecycle import RoomLifecycle
from core.room_store import RoomStore
from core.exceptions import (
    RoomLifecycleError,
    ConflictError,
    NotFoundError,
    InvalidStateError,
    DependentOperationFailed,
    ExhaustedRetries
)

router = APIRouter(prefix="/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


@lru_cache()
def get_lifecycle() -> RoomLifecycle:
    """FastAPI dependency：整個 process 共用一個 RoomLifecycle（本身無狀態）"""
    return RoomLifecycle(RoomStore())


def to_http_error(e: RoomLifecycleError) -> HTTPException:
    """異常類別 -> HTTP status"""
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (ConflictError, InvalidStateError, DependentOperationFailed)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ExhaustedRetries):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


# ============ 前置守衛 ============

def check_duplicate_room_owner(lifecycle: RoomLifecycle, user_id: str):
    """使用者已經擁有房間時拒絕建立"""
    if lifecycle.store.find_by_owner(user_id):
        raise HTTPException(
            status_code=400,
            detail="Could not create room: User already owns a room!"
        )


def check_duplicate_player(lifecycle: RoomLifecycle, user_id: str):
    """使用者已經是玩家或房主時拒絕加入"""
    store = lifecycle.store
    if store.find_by_player_id(user_id) or store.find_by_owner(user_id):
        raise HTTPException(
            status_code=400,
            detail="Could not join room: User is already in a room!"
        )


# ============ Endpoints ============

@router.put("/create", response_model=CreateRoomResponse, status_code=201)
def create_room(body: UserWithNameRequest, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    """
    建立房間（房主 endpoint）

    返回：
        - room_code: 6 位英數房間代碼
    """
    check_duplicate_room_owner(lifecycle, body.user_id)

    try:
        room = lifecycle.create_room(body.user_id, body.username)
        return CreateRoomResponse(room_code=room.code)
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to create room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/getowner", response_model=str)
def get_owner(code: str, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.get_owner(code)
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to get owner: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{code}/getplayers", response_model=List[str])
def get_players(code: str, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    """返回房間內所有玩家的 user_id（依加入順序）"""
    try:
        return lifecycle.get_players(code)
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to get players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{code}/delete", response_model=RoomResponse, status_code=202)
def delete_room(code: str, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    """
    刪除房間

    注意：
        - 遊戲進行中也可以刪除，角色資訊會一併消失
    """
    try:
        room = lifecycle.delete_room(code)
        return RoomResponse.model_validate(room.model_dump())
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to delete room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{code}/join", response_model=MessageResponse, status_code=202)
def join_room(code: str, body: UserWithNameRequest, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    """
    加入房間（玩家 endpoint）

    前置條件：
    - 使用者名稱未被使用
    - 房間必須存在
    - 房間不在遊戲中
    """
    check_duplicate_player(lifecycle, body.user_id)

    try:
        lifecycle.join_room(code, body.user_id, body.username)
        return MessageResponse(message="Room joined successfully!")
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to join room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/leave", response_model=MessageResponse, status_code=202)
def leave_room(body: UserRequest, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    try:
        lifecycle.leave_room(body.user_id)
        return MessageResponse(message="Room left successfully!")
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to leave room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/startgame", response_model=MessageResponse, status_code=202)
def start_game(body: StartGameRequest, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    """
    開始遊戲（房主 endpoint）

    參數：
        settings.werewolf_ratio: 狼人比例 (0, 1]
        settings.owner_is_playing: 房主是否參與
    """
    try:
        lifecycle.start_game(body.user_id, body.settings)
        return MessageResponse(message="Game started successfully!")
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to start game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/endgame", response_model=MessageResponse, status_code=202)
def end_game(body: UserRequest, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    try:
        lifecycle.end_game(body.user_id)
        return MessageResponse(message="Game ended successfully!")
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to end game: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{user_id}/getrole", response_model=str)
def get_role(user_id: str, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    try:
        return lifecycle.get_role(user_id)
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to get role: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{user_id}/getOwnedRoom", response_model=RoomResponse)
def get_owned_room(user_id: str, lifecycle: RoomLifecycle = Depends(get_lifecycle)):
    try:
        room = lifecycle.get_owned_room(user_id)
        return RoomResponse.model_validate(room.model_dump())
    except RoomLifecycleError as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Failed to get owned room: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
