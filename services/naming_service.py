"""
命名服務：生成 Room Code

純計算邏輯，不涉及狀態轉換
"""
import random
import string

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def generate_room_code(rng: random.Random = None) -> str:
    """
    生成隨機的 6 位英數房間代碼（大小寫字母 + 數字，共 62 個符號）

    範例：aB3xYz, Q9k0Lm

    參數：
        rng: 亂數來源（測試時可注入固定 seed 的 random.Random）

    注意：
    - 不檢查唯一性（由呼叫者負責）
    - 62^6 ≈ 5.6 × 10^10 種可能，碰撞機率極低
    """
    rng = rng or random
    return ''.join(rng.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))
