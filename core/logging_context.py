"""
日志上下文管理模块

提供协程安全的上下文变量，用于在日志中记录当前对话轮次的 turn_id
"""

import uuid
from contextvars import ContextVar
from typing import Optional

turn_id_var: ContextVar[Optional[str]] = ContextVar("turn_id", default=None)


def new_turn_id() -> str:
    """生成并设置新的轮次 ID"""
    turn_id = uuid.uuid4().hex[:12]
    turn_id_var.set(turn_id)
    return turn_id


def set_turn_id(turn_id: Optional[str]) -> None:
    """设置当前轮次 ID"""
    turn_id_var.set(turn_id)


def get_turn_id() -> Optional[str]:
    """获取当前轮次 ID"""
    return turn_id_var.get()


__all__ = [
    "turn_id_var",
    "new_turn_id",
    "set_turn_id",
    "get_turn_id",
]
