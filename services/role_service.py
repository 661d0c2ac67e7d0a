"""
角色服務：分配和清除玩家角色

純計算邏輯，不涉及資料庫與狀態轉換：
- 輸入玩家快照序列，回傳新的序列
- 呼叫者傳入的序列不會被修改
"""
import math
import random
from typing import Sequence, Tuple

from core.room_state import PlayerState, Role


def werewolf_count(player_count: int, ratio: float) -> int:
    """
    計算狼人數量

    規則：
    - max(floor(玩家數 × ratio), 1)
    - 再限制不超過玩家數（ratio <= 1 時本來就不會超過）
    - 沒有玩家時為 0

    範例：
        werewolf_count(4, 0.25) -> 1
        werewolf_count(10, 0.3) -> 3
        werewolf_count(1, 0.99) -> 1
    """
    if player_count <= 0:
        return 0
    return min(max(math.floor(player_count * ratio), 1), player_count)


def assign_roles(
    players: Sequence[PlayerState],
    ratio: float,
    rng: random.Random = None
) -> Tuple[PlayerState, ...]:
    """
    為所有玩家分配角色

    邏輯：
    - 先對玩家位置做均勻隨機排列（Fisher-Yates，random.shuffle）
    - 排列後前 k 個位置是 Werewolf，其餘是 Villager
    - 回傳時保留原本的加入順序

    參數：
        players: 玩家快照序列
        ratio: 狼人比例 (0, 1]
        rng: 亂數來源（測試時可注入）

    返回：
        已填入 role 的新玩家 tuple
    """
    if not players:
        return tuple(players)

    rng = rng or random
    order = list(range(len(players)))
    rng.shuffle(order)

    k = werewolf_count(len(players), ratio)
    werewolves = set(order[:k])
    return tuple(
        player.model_copy(update={"role": (Role.WEREWOLF if i in werewolves else Role.VILLAGER).value})
        for i, player in enumerate(players)
    )


def unassign_roles(players: Sequence[PlayerState]) -> Tuple[PlayerState, ...]:
    """清除所有玩家的角色，保留順序"""
    return tuple(player.model_copy(update={"role": ""}) for player in players)
