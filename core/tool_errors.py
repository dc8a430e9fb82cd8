"""
工具错误类型定义模块。

提供 ToolError 作为工具层统一异常基类，并按失败来源细分子类：
- ResolutionError: 意图解析失败（只在解析器内部使用，最终降级为“无函数调用”）
- ArgumentValidationError: 参数数量/类型不合法
- CollaboratorError: 语言模型等外部协作方调用失败
- ExternalIOError: 文件、HTTP、进程等外部 I/O 失败
- DispatchError: 分类/函数名无法路由
- OperationCancelledError: 用户取消当前轮次

设计约束：
- message 必须可读且非空，可直接展示给用户；
- cause 仅用于日志记录，不直接拼接进用户可见文本。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ToolError(Exception):
    """
    工具层统一异常类型。

    重要不变量（invariants）：
    - message 为非空字符串；
    - details 始终为字典对象（无信息时为空字典）。
    """

    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        """
        初始化 ToolError。

        Args:
            message: 面向用户的错误说明（简明可读）
            code: 稳定的机器可识别错误码，缺省使用子类的 default_code
            details: 结构化附加信息（用于日志或排查）
            cause: 原始异常（仅用于日志）
        """
        safe_message = message.strip() if isinstance(message, str) else ""
        if not safe_message:
            safe_message = "Unknown tool error"
        super().__init__(safe_message)
        self.message = safe_message
        self.code = code or self.default_code
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """
        转换为可序列化的错误结构（不包含 cause）。

        Returns:
            Dict[str, Any]: 错误结构
        """
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
            "error_type": self.__class__.__name__,
        }

    def to_log_dict(self) -> Dict[str, Any]:
        """
        转换为日志用错误结构（包含 cause）。

        Returns:
            Dict[str, Any]: 适合写入日志的错误结构
        """
        payload = self.to_dict()
        if self.cause is not None:
            payload["cause"] = repr(self.cause)
        return payload

    def __str__(self) -> str:
        return f"{self.message} (code={self.code})" if self.code else self.message


class ResolutionError(ToolError):
    """语言模型输出无法解析为函数调用"""

    default_code = "resolution_failed"


class ArgumentValidationError(ToolError):
    """函数参数数量或类型不合法"""

    default_code = "invalid_arguments"


class CollaboratorError(ToolError):
    """语言模型等协作方调用失败"""

    default_code = "collaborator_failed"


class ExternalIOError(ToolError):
    """文件读取、HTTP 请求或进程执行失败"""

    default_code = "external_io_failed"


class DispatchError(ToolError):
    """分类或函数名无法路由到处理器"""

    default_code = "dispatch_failed"


class OperationCancelledError(ToolError):
    """当前轮次已被用户取消"""

    default_code = "cancelled"


__all__ = [
    "ToolError",
    "ResolutionError",
    "ArgumentValidationError",
    "CollaboratorError",
    "ExternalIOError",
    "DispatchError",
    "OperationCancelledError",
]
