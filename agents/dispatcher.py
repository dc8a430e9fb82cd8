"""
函数调用分发器

按 ResolvedCall 的分类标签找到处理器并执行，返回本次请求是否被完整处理。

设计约束:
    - 构建时要求每个 FunctionCategory 都有且只有一个处理器
    - 未知分类、函数名与分类不匹配：写出错误信息并返回 False，不抛异常
    - 处理器抛出的任何异常都在这里捕获、记录并写出，返回 False
    - 处理器自己输出的领域失败（参数错误、文件不存在、HTTP 失败）仍视为分发成功
    - 取消（OperationCancelledError）向上传播，由对话控制器结束本轮
    - 每次分发都写一条工具调用诊断记录
"""

import logging
import time
from typing import Dict, Iterable, Optional

from core.response_sink import ResponseSink
from core.tool_context import record_tool_call
from core.tool_errors import DispatchError, OperationCancelledError, ToolError
from Tools.baseTool import BaseToolHandler, ToolContext
from Tools.registry import FunctionRegistry
from Tools.tool_spec import FunctionCategory, ResolvedCall

logger = logging.getLogger(__name__)


class Dispatcher:
    """分类 -> 处理器 的路由"""

    def __init__(self, registry: FunctionRegistry, handlers: Iterable[BaseToolHandler]) -> None:
        table: Dict[FunctionCategory, BaseToolHandler] = {}
        for handler in handlers:
            if handler.category in table:
                raise ValueError(f"分类 {handler.category.value} 重复注册处理器")
            table[handler.category] = handler

        missing = [category.value for category in FunctionCategory if category not in table]
        if missing:
            raise ValueError(f"以下分类缺少处理器: {', '.join(missing)}")

        self.registry = registry
        self._handlers = table

    def route(self, call: ResolvedCall) -> BaseToolHandler:
        """
        找到调用对应的处理器

        Raises:
            DispatchError: 分类未知，或函数名不属于该分类
        """
        category = FunctionCategory.parse(call.category)
        if category is None:
            raise DispatchError(
                f"未知的函数类型 '{call.category}'",
                details={"function_name": call.function_name, "category": call.category},
            )

        spec = self.registry.get(call.function_name)
        if spec is None or spec.category is not category:
            raise DispatchError(
                f"不支持的函数 '{call.function_name}'（类型 '{call.category}'）",
                details={"function_name": call.function_name, "category": call.category},
            )
        return self._handlers[category]

    async def dispatch(
        self,
        call: ResolvedCall,
        prompt: str,
        sink: ResponseSink,
        context: ToolContext,
    ) -> bool:
        """
        分发一次调用

        Args:
            call: 解析得到的调用
            prompt: 用户原始输入
            sink: 输出
            context: 本轮协作方（语言模型、取消令牌）

        Returns:
            bool: 处理器正常结束返回 True；路由失败或处理器抛出异常返回 False

        Raises:
            OperationCancelledError: 处理过程中被取消
        """
        try:
            handler = self.route(call)
        except DispatchError as e:
            logger.warning("分发失败: %s", e.to_log_dict())
            sink.write(f"❌ **错误**: {e.message}")
            self._record(call, is_success=False, started=None, error=e.message)
            return False

        started = time.perf_counter()
        try:
            await handler.handle(call, prompt, sink, context)
        except OperationCancelledError:
            self._record(call, is_success=False, started=started, error="cancelled")
            raise
        except Exception as e:
            detail = e.message if isinstance(e, ToolError) else str(e) or e.__class__.__name__
            logger.exception(f"执行 {call.function_name} 时出错")
            sink.write(f"\n\n❌ **错误**: 执行 {call.function_name} 失败 - {detail}")
            self._record(call, is_success=False, started=started, error=detail)
            return False

        self._record(call, is_success=True, started=started)
        return True

    @staticmethod
    def _record(
        call: ResolvedCall,
        is_success: bool,
        started: Optional[float],
        error: Optional[str] = None,
    ) -> None:
        record_tool_call(
            function_name=call.function_name,
            category=call.category,
            arguments=call.arguments,
            is_success=is_success,
            duration=time.perf_counter() - started if started is not None else None,
            error=error,
        )


__all__ = [
    "Dispatcher",
]
