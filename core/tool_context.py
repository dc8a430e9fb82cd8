"""
工具调用诊断记录模块

每次分发都会产生一条结构化记录（函数名、分类、参数、是否成功、耗时、错误、turn_id），
写入 "tool_calls" 日志器；logger.yaml 中 tool 段配置为 json 格式时，文件即为 NDJSON。

记录只用于排查问题，不会被读回，也不会影响任何行为。

使用示例:
    from core.tool_context import record_tool_call

    record_tool_call(
        function_name="AddTwoNumbers",
        category="math",
        arguments=[5, 3],
        is_success=True,
        duration=0.0004,
    )
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from core.logging_context import get_turn_id

tool_call_logger = logging.getLogger("tool_calls")


def _json_safe(value: Any) -> Any:
    """
    把参数转换为可 JSON 序列化的结构

    - UUID -> str
    - 列表/元组/字典递归处理
    - 其他不可序列化类型 -> repr
    """
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return repr(value)


def build_tool_call_entry(
    function_name: str,
    category: str,
    arguments: Sequence[Any],
    is_success: bool,
    duration: Optional[float] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """
    构建一条工具调用记录

    Args:
        function_name: 函数名称
        category: 分类标签（模型给出的原始值）
        arguments: 原始参数
        is_success: 分发是否成功
        duration: 执行时长（秒）
        error: 错误说明

    Returns:
        Dict[str, Any]: 可序列化的记录
    """
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "turn_id": get_turn_id(),
        "function_name": function_name,
        "category": category,
        "arguments": _json_safe(list(arguments)),
        "is_success": is_success,
        "duration": round(duration, 6) if duration is not None else None,
        "error": error,
    }


def record_tool_call(
    function_name: str,
    category: str,
    arguments: Sequence[Any],
    is_success: bool,
    duration: Optional[float] = None,
    error: Optional[str] = None,
) -> Dict[str, Any]:
    """
    记录一次工具调用

    Returns:
        Dict[str, Any]: 写入日志的记录
    """
    entry = build_tool_call_entry(
        function_name=function_name,
        category=category,
        arguments=arguments,
        is_success=is_success,
        duration=duration,
        error=error,
    )
    level = logging.DEBUG if is_success else logging.ERROR
    tool_call_logger.log(
        level,
        "tool call %s (%s) %s",
        function_name,
        category,
        "ok" if is_success else "failed",
        extra={"tool_call": entry},
    )
    return entry


__all__ = [
    "build_tool_call_entry",
    "record_tool_call",
]
