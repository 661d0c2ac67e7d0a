"""
Room Lifecycle：管理 Room 的完整生命週期（狀態機）

狀態：
- Lobby（in_progress=False）：可以加入、離開、更換設定
- Active（in_progress=True）：已分配角色，不接受新玩家
建立後為 Lobby，沒有終止狀態，只能透過 delete_room 刪除（兩種狀態都允許）

職責：
1. 建立 / 刪除 Room
2. 玩家加入 / 離開
3. 開始 / 結束一回合（分配 / 清除角色）
4. 查詢房主、玩家、角色

並發原則：
- 不快取 Room，每個操作都重新讀取
- 所有依賴房間當下狀態的檢查都放進 RoomStore.update_by_* 的 mutator 內，
  在鎖定的 transaction 內重新驗證，避免 check-then-act 競態
- 事前檢查（pre-check）只負責決定錯誤的先後順序
"""
from typing import List, Optional
import logging
import random

from database import get_settings
from core.room_state import RoomState, GameSettings, PlayerState
from core.room_store import RoomStore
from core.exceptions import (
    RoomLifecycleError,
    OwnerAlreadyHasRoom,
    UsernameTaken,
    PlayerAlreadyInRoom,
    MembershipConflict,
    RoomNotFound,
    NotInRoom,
    GameInProgress,
    AlreadyInProgress,
    NotInProgress,
    GameNotStarted,
    OwnerNotPlaying,
    OwnerJoinFailed,
    OwnerLeaveFailed,
    ExhaustedRetries
)
from services.naming_service import generate_room_code
from services.role_service import assign_roles, unassign_roles

logger = logging.getLogger(__name__)


class RoomLifecycle:
    """Room 生命週期管理器"""

    def __init__(
        self,
        store: RoomStore,
        rng: Optional[random.Random] = None,
        max_code_attempts: Optional[int] = None
    ):
        self.store = store
        self.rng = rng or random.Random()
        if max_code_attempts is None:
            max_code_attempts = get_settings().room_code_max_attempts
        self.max_code_attempts = max_code_attempts

    # ============ 建立 / 刪除 ============

    def create_room(self, owner_id: str, owner_username: str) -> RoomState:
        """
        建立新房間

        流程：
        1. 確認使用者尚未擁有房間
        2. 生成房間代碼並寫入，代碼已被使用就重新生成

        返回：
            新建立的 Room（Lobby 狀態、沒有玩家）

        異常：
            OwnerAlreadyHasRoom: 使用者已經擁有房間
            ExhaustedRetries: 重試 max_code_attempts 次仍無法取得唯一代碼

        注意：
            - 碰撞機率極低（62^6），重試迴圈只是解決 birthday collision
            - insert 本身也會拒絕重複的 owner_id（並發建立時）
        """
        if self.store.find_by_owner(owner_id):
            raise OwnerAlreadyHasRoom(owner_id)

        for attempt in range(1, self.max_code_attempts + 1):
            code = generate_room_code(self.rng)
            room = self.store.insert(RoomState(
                code=code,
                owner_id=owner_id,
                owner_username=owner_username
            ))
            if room is not None:
                logger.info(f"Created room {code} for owner {owner_id}")
                return room
            logger.warning(f"Room code collision detected on attempt {attempt}: {code}")

        raise ExhaustedRetries(self.max_code_attempts)

    def delete_room(self, code: str) -> RoomState:
        """刪除房間（不論是否進行中），回傳被刪除的 Room"""
        room = self.store.delete_by_code(code)
        if room is None:
            raise RoomNotFound(code)
        if room.in_progress:
            logger.warning(f"Room {code} deleted while a game was in progress")
        logger.info(f"Deleted room {code}")
        return room

    # ============ 查詢 ============

    def get_owner(self, code: str) -> str:
        return self._require_room(code).owner_id

    def get_players(self, code: str) -> List[str]:
        return self._require_room(code).player_ids

    def get_owned_room(self, owner_id: str) -> RoomState:
        room = self.store.find_by_owner(owner_id)
        if room is None:
            raise RoomNotFound(f"owned by {owner_id}")
        return room

    def get_role(self, user_id: str) -> str:
        """
        查詢玩家角色

        判斷順序：
        1. 是玩家 → 遊戲進行中回傳角色，否則 GameNotStarted
        2. 不是玩家但是房主 → OwnerNotPlaying（不論房間狀態，房主沒參與就沒有角色）
        3. 都不是 → NotInRoom
        """
        room = self.store.find_by_player_id(user_id)
        if room is None:
            if self.store.find_by_owner(user_id):
                raise OwnerNotPlaying(user_id)
            raise NotInRoom(user_id)

        if not room.in_progress:
            raise GameNotStarted(user_id)

        player = room.find_player(user_id)
        if player is None:
            raise NotInRoom(user_id)
        return player.role

    # ============ 成員 ============

    def join_room(self, code: str, user_id: str, username: str) -> RoomState:
        """
        加入房間

        前置條件（依序檢查，各自有不同錯誤）：
        1. 使用者名稱在全系統未被使用 → UsernameTaken
        2. 房間存在 → RoomNotFound
        3. 房間不在進行中 → GameInProgress
        4. 使用者不是任何房間的玩家，也不是其他房間的房主 → PlayerAlreadyInRoom

        2~4 會在 mutator 內再檢查一次（與寫入在同一個 transaction），
        跨房間的唯一性則由資料庫 unique constraint 保證
        """
        if self.store.find_by_player_username(username):
            raise UsernameTaken(username)

        room = self._require_room(code)
        if room.in_progress:
            raise GameInProgress(code)

        owned = self.store.find_by_owner(user_id)
        if (owned and owned.code != code) or self.store.find_by_player_id(user_id):
            raise PlayerAlreadyInRoom(user_id)

        def add_player(current: RoomState) -> RoomState:
            if current.in_progress:
                raise GameInProgress(current.code)
            if current.has_username(username):
                raise UsernameTaken(username)
            if current.find_player(user_id):
                raise PlayerAlreadyInRoom(user_id)
            return current.model_copy(update={
                "players": current.players + (PlayerState(user_id=user_id, username=username),)
            })

        try:
            updated = self.store.update_by_code(code, add_player)
        except MembershipConflict:
            # 並發加入：另一個請求先寫入了同名或同 ID 的玩家
            if self.store.find_by_player_username(username):
                raise UsernameTaken(username)
            raise PlayerAlreadyInRoom(user_id)

        if updated is None:
            raise RoomNotFound(code)

        logger.info(f"User {user_id} ({username}) joined room {code}")
        return updated

    def leave_room(self, user_id: str) -> RoomState:
        """
        離開房間（以玩家 ID 尋找房間，不需要房間代碼）

        注意：
            - 不檢查 in_progress，玩家可以在遊戲中途離開
            - 狼人數量不會重新計算，直到下一次 start_game
        """
        def remove_player(current: RoomState) -> RoomState:
            return current.model_copy(update={
                "players": tuple(p for p in current.players if p.user_id != user_id)
            })

        updated = self.store.update_by_player_id(user_id, remove_player)
        if updated is None:
            raise RoomNotFound(f"containing player {user_id}")

        logger.info(f"User {user_id} left room {updated.code}")
        return updated

    # ============ 回合 ============

    def start_game(self, owner_id: str, settings: GameSettings) -> RoomState:
        """
        開始遊戲（Lobby -> Active）

        流程（每一步都是獨立的 atomic update，整體不是 atomic）：
        1. 替換設定
        2. 若房主參與遊戲，透過 join_room 加入房主
        3. 對當下玩家名單分配角色，並設定 in_progress=True（同一個 mutator）

        異常：
            RoomNotFound: 使用者沒有房間
            AlreadyInProgress: 遊戲已經開始
            OwnerJoinFailed: 第 2 步失敗（設定已經被替換，不會 rollback）
        """
        room = self._require_owned_room(owner_id)
        if room.in_progress:
            raise AlreadyInProgress(room.code)

        def replace_settings(current: RoomState) -> RoomState:
            if current.in_progress:
                raise AlreadyInProgress(current.code)
            return current.model_copy(update={"settings": settings})

        room = self._update_owned(owner_id, replace_settings)

        if room.settings.owner_is_playing:
            try:
                self.join_room(room.code, room.owner_id, room.owner_username)
            except RoomLifecycleError as e:
                logger.error(f"Failed to add owner {owner_id} to room {room.code}: {e}")
                raise OwnerJoinFailed(room.code, e) from e

        rng = self.rng

        def activate(current: RoomState) -> RoomState:
            if current.in_progress:
                raise AlreadyInProgress(current.code)
            return current.model_copy(update={
                "players": assign_roles(current.players, current.settings.werewolf_ratio, rng),
                "in_progress": True
            })

        room = self._update_owned(owner_id, activate)
        logger.info(
            f"Game started in room {room.code} with {len(room.players)} players "
            f"(ratio={room.settings.werewolf_ratio})"
        )
        return room

    def end_game(self, owner_id: str) -> RoomState:
        """
        結束遊戲（Active -> Lobby）

        流程：
        1. 若房主參與遊戲且仍在玩家名單，透過 leave_room 移除房主
        2. 清除所有角色，並設定 in_progress=False（同一個 mutator）

        異常：
            RoomNotFound: 使用者沒有房間
            NotInProgress: 遊戲尚未開始（角色保持不變）
            OwnerLeaveFailed: 第 1 步失敗
        """
        room = self._require_owned_room(owner_id)
        if not room.in_progress:
            raise NotInProgress(room.code)

        if room.settings.owner_is_playing and room.find_player(owner_id):
            try:
                self.leave_room(owner_id)
            except RoomLifecycleError as e:
                logger.error(f"Failed to remove owner {owner_id} from room {room.code}: {e}")
                raise OwnerLeaveFailed(room.code, e) from e

        def deactivate(current: RoomState) -> RoomState:
            if not current.in_progress:
                raise NotInProgress(current.code)
            return current.model_copy(update={
                "players": unassign_roles(current.players),
                "in_progress": False
            })

        room = self._update_owned(owner_id, deactivate)
        logger.info(f"Game ended in room {room.code}")
        return room

    # ============ 內部工具 ============

    def _require_room(self, code: str) -> RoomState:
        room = self.store.find_by_code(code)
        if room is None:
            raise RoomNotFound(code)
        return room

    def _require_owned_room(self, owner_id: str) -> RoomState:
        room = self.store.find_by_owner(owner_id)
        if room is None:
            raise RoomNotFound(f"owned by {owner_id}")
        return room

    def _update_owned(self, owner_id: str, mutator) -> RoomState:
        room = self.store.update_by_owner(owner_id, mutator)
        if room is None:
            # 讀取後被刪除
            raise RoomNotFound(f"owned by {owner_id}")
        return room
