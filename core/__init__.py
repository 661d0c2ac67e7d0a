"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- RoomLifecycle：集中管理房間狀態轉換（Lobby / Active）
- RoomStore：以 SQLAlchemy 實作的房間儲存，提供 atomic update
- RoomState：房間快照
- Locks：並發控制工具
"""
