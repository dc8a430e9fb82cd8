"""
工具处理器基类

每个函数分类对应一个处理器，处理流程统一为：
    parse_arguments（未类型化参数 -> 类型化调用） -> execute（副作用 + 输出）

参数校验失败时处理器自己输出错误说明并正常返回；其余异常向上抛给分发器。
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from core.cancellation import CancellationToken
from core.language_model import LanguageModel, stream_text
from core.response_sink import ResponseSink
from core.tool_errors import ArgumentValidationError, CollaboratorError, OperationCancelledError
from Tools.tool_spec import FunctionCategory, ResolvedCall

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """
    单轮对话内传给处理器的协作方

    Attributes:
        model: 语言模型（作品集分析、日志分析使用）
        cancel_token: 当前轮次的取消令牌
    """

    model: LanguageModel
    cancel_token: Optional[CancellationToken] = None


class BaseToolHandler(ABC):
    """工具处理器基类"""

    category: FunctionCategory
    function_names: Tuple[str, ...] = ()

    @abstractmethod
    def parse_arguments(self, function_name: str, arguments: Sequence[Any]) -> Any:
        """
        把 JSON 参数转换为该分类的类型化调用

        Raises:
            ArgumentValidationError: 参数数量或类型不合法
        """
        raise NotImplementedError("子类必须实现 parse_arguments 方法")

    @abstractmethod
    async def execute(self, invocation: Any, prompt: str, sink: ResponseSink, context: ToolContext) -> None:
        """执行类型化调用并把结果写入 sink"""
        raise NotImplementedError("子类必须实现 execute 方法")

    def validation_help(self, function_name: str) -> List[str]:
        """参数校验失败时追加的提示行"""
        return []

    async def handle(self, call: ResolvedCall, prompt: str, sink: ResponseSink, context: ToolContext) -> None:
        """
        处理一次函数调用

        Args:
            call: 解析得到的调用
            prompt: 用户原始输入
            sink: 输出
            context: 本轮协作方
        """
        try:
            invocation = self.parse_arguments(call.function_name, call.arguments)
        except ArgumentValidationError as e:
            logger.info("参数校验失败: %s", e.to_log_dict())
            sink.write(f"❌ **错误**: {e.message}")
            for line in self.validation_help(call.function_name):
                sink.write(f"\n{line}")
            return

        logger.debug("执行 %s: %r", call.function_name, invocation)
        await self.execute(invocation, prompt, sink, context)


async def relay_model_answer(
    model: LanguageModel,
    prompt: str,
    sink: ResponseSink,
    cancel_token: Optional[CancellationToken] = None,
) -> int:
    """
    把语言模型的回答逐片段转发到 sink

    Returns:
        int: 转发的片段数

    Raises:
        CollaboratorError: 语言模型调用失败
        OperationCancelledError: 转发过程中被取消
    """
    try:
        return await stream_text(model, prompt, sink.write, cancel_token)
    except OperationCancelledError:
        raise
    except Exception as e:
        raise CollaboratorError(f"语言模型调用失败: {e}", cause=e) from e


def require_arity(function_name: str, arguments: Sequence[Any], expected: int, what: str = "") -> None:
    """
    参数个数必须恰好为 expected

    Raises:
        ArgumentValidationError: 个数不符
    """
    if len(arguments) != expected:
        suffix = f"（{what}）" if what else ""
        raise ArgumentValidationError(
            f"{function_name} 需要恰好 {expected} 个参数{suffix}，实际收到 {len(arguments)} 个",
            details={"function": function_name, "expected": expected, "received": len(arguments)},
        )


__all__ = [
    "ToolContext",
    "BaseToolHandler",
    "relay_model_answer",
    "require_arity",
]
