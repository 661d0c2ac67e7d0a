"""
自定義異常類別

集中管理所有房間生命週期異常，方便 API 層統一處理

異常分成幾種「類別」(kind)，API 層只需要依類別對應 HTTP status：
- ConflictError：重複的房主 / 使用者名稱 / 玩家
- NotFoundError：房間、房主、玩家不存在
- InvalidStateError：狀態不允許此操作（遊戲進行中 / 尚未開始）
- DependentOperationFailed：start_game / end_game 內部子操作失敗
- ExhaustedRetries：房間代碼生成重試次數用盡
"""


class RoomLifecycleError(Exception):
    """所有房間生命週期異常的基類"""
    pass


# ============ 錯誤類別 ============

class ConflictError(RoomLifecycleError):
    """資料衝突"""
    pass


class NotFoundError(RoomLifecycleError):
    """找不到資源"""
    pass


class InvalidStateError(RoomLifecycleError):
    """房間狀態不允許此操作"""
    pass


class DependentOperationFailed(RoomLifecycleError):
    """
    子操作失敗（start_game 加入房主 / end_game 移除房主）

    房間會停在失敗前已到達的中間狀態，不會自動 rollback，
    呼叫者可透過 room_code 與 cause 檢查並手動修復
    """
    def __init__(self, room_code: str, cause: Exception, action: str):
        self.room_code = room_code
        self.cause = cause
        super().__init__(f"Error {action} room {room_code}: {cause}")


class ExhaustedRetries(RoomLifecycleError):
    """房間代碼生成重試次數用盡"""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique room code after {attempts} attempts")


# ============ Conflict ============

class OwnerAlreadyHasRoom(ConflictError):
    """使用者已經擁有一個房間"""
    def __init__(self, owner_id: str):
        self.owner_id = owner_id
        super().__init__(f"User {owner_id} already owns a room")


class UsernameTaken(ConflictError):
    """使用者名稱已被其他玩家使用"""
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username {username} already taken")


class PlayerAlreadyInRoom(ConflictError):
    """使用者已經是某個房間的玩家，或擁有另一個房間"""
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} is already in a room")


# ============ NotFound ============

class RoomNotFound(NotFoundError):
    """房間不存在"""
    def __init__(self, lookup):
        self.lookup = lookup
        super().__init__(f"Room {lookup} not found")


class NotInRoom(NotFoundError):
    """使用者既不是玩家也不是房主"""
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User {user_id} is not in a room")


# ============ InvalidState ============

class GameInProgress(InvalidStateError):
    """房間遊戲進行中，不接受新玩家"""
    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Game in progress in room {room_code}")


class AlreadyInProgress(InvalidStateError):
    """遊戲已經開始"""
    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Game already in progress in room {room_code}")


class NotInProgress(InvalidStateError):
    """遊戲尚未開始，無法結束"""
    def __init__(self, room_code: str):
        self.room_code = room_code
        super().__init__(f"Game is not in progress in room {room_code}")


class GameNotStarted(InvalidStateError):
    """遊戲尚未開始，玩家沒有角色"""
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"Game has not started for user {user_id}")


class OwnerNotPlaying(GameNotStarted):
    """房主沒有參與遊戲，因此沒有角色（不論房間狀態）"""
    pass


# ============ DependentOperationFailed ============

class OwnerJoinFailed(DependentOperationFailed):
    """start_game 時將房主加入玩家列表失敗"""
    def __init__(self, room_code: str, cause: Exception):
        super().__init__(room_code, cause, action="adding owner to")


class OwnerLeaveFailed(DependentOperationFailed):
    """end_game 時將房主移出玩家列表失敗"""
    def __init__(self, room_code: str, cause: Exception):
        super().__init__(room_code, cause, action="removing owner from")


# ============ Store ============

class MembershipConflict(ConflictError):
    """
    寫入時違反跨房間唯一性（user_id / username）

    由 RoomStore 在資料庫 unique constraint 失敗時拋出，
    RoomLifecycle 會再轉換成 UsernameTaken 或 PlayerAlreadyInRoom
    """
    pass
