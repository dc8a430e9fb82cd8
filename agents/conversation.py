"""
对话控制器

一轮对话的编排：
    1. 生成本轮 turn_id（写入日志上下文）
    2. 意图解析 -> 解析到调用则分发，本轮结束（无论分发是否成功）
    3. 未解析到调用：问候 / 帮助 / 回显

技术栈:
    - agents.intent_resolver / agents.dispatcher
    - core.cancellation（用户取消时以一行提示结束本轮）

设计约束:
    - 同一时间只处理一轮；控制器不保存跨轮状态
    - 除取消外，任何失败都以用户可见文本结束，不会中断对话

使用示例:
    controller = create_conversation_controller(model)
    sink = MemoryResponseSink()
    outcome = await controller.handle_turn("Add 5 and 3", sink)
"""

import logging
import re
from enum import Enum
from typing import Iterable, Optional

from core.cancellation import CancellationToken
from core.language_model import LanguageModel
from core.logging_context import new_turn_id
from core.response_sink import ResponseSink
from core.tool_errors import OperationCancelledError
from agents.dispatcher import Dispatcher
from agents.intent_resolver import IntentResolver
from Tools.baseTool import BaseToolHandler, ToolContext
from Tools.registry import FunctionRegistry, build_default_registry

logger = logging.getLogger(__name__)

GREETING_PATTERN = re.compile(r"\b(hello|hi)\b", re.IGNORECASE)
HELP_PATTERN = re.compile(r"\bhelp\b", re.IGNORECASE)

GREETING_TEXT = (
    "👋 你好！我是你的 AI 助手，可以做算术、搜索作品集、执行脚本和分析日志。"
    "\n\n🧠 **试试这样问我**:"
    "\n- \"Add 5 and 3\""
    "\n- \"What is 10 times 4?\""
    "\n- \"Search for John's projects\""
    "\n- \"Run script1 with hello and world\""
    "\n- \"Analyze logs from production api\""
)

HELP_TEXT = """
## 🤖 AI 助手

我会用语言模型理解你的请求，再调用对应的函数。

## 🧮 算术
- **加法**: "Add 5 and 3", "What's 10 plus 20?"
- **乘法**: "Multiply 4 by 6", "What is 8 times 9?"

## 📊 作品集查询（REST 接口 + AI）
- **搜索项目**: "Search for design projects", "Find John's work"
- **列出项目**: "Show all portfolio items"

## ⚡ 脚本执行
- **问候脚本**: "Run script1 with hello and world"
- **计算器脚本**: "Execute calculator script with 15 25 multiply"

## 📂 日志分析
- **AI 诊断**: "Analyze logs from production api"
- **读取错误**: "Read log file dev frontend"
- **查看配置**: "List log configurations"
"""

ECHO_SUGGESTIONS = (
    "\n\n🤖 我是一个 AI 助手，可以做算术、查询作品集、执行脚本和分析日志。"
    "\n\n✨ **试试这样问我**:"
    "\n- \"Add 15 and 25\"（算术）"
    "\n- \"Search for design projects\"（作品集）"
    "\n- \"Run greeting script with Alice\"（脚本）"
    "\n- \"List log configurations\"（日志）"
    "\n\n💡 我会用 AI 理解你的请求并调用合适的函数！"
)

CANCELLED_TEXT = "\n\n⏹️ *已取消*"


class TurnOutcome(str, Enum):
    """一轮对话的结局"""

    FUNCTION_CALL = "function_call"
    GREETING = "greeting"
    HELP = "help"
    ECHO = "echo"
    CANCELLED = "cancelled"


class ConversationController:
    """
    对话控制器

    Attributes:
        model: 语言模型协作方
        resolver: 意图解析器
        dispatcher: 分发器
    """

    def __init__(self, model: LanguageModel, resolver: IntentResolver, dispatcher: Dispatcher) -> None:
        self.model = model
        self.resolver = resolver
        self.dispatcher = dispatcher

    async def handle_turn(
        self,
        prompt: str,
        sink: ResponseSink,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TurnOutcome:
        """
        处理一轮对话

        Args:
            prompt: 用户输入
            sink: 输出
            cancel_token: 取消令牌

        Returns:
            TurnOutcome: 本轮结局
        """
        turn_id = new_turn_id()
        logger.info(f"[{turn_id}] 收到用户输入: {prompt!r}")

        try:
            call = await self.resolver.resolve(prompt, cancel_token)
            if call is not None:
                context = ToolContext(model=self.model, cancel_token=cancel_token)
                handled = await self.dispatcher.dispatch(call, prompt, sink, context)
                logger.info(f"[{turn_id}] {call.describe()} handled={handled}")
                return TurnOutcome.FUNCTION_CALL
        except OperationCancelledError:
            logger.info(f"[{turn_id}] 本轮已被取消")
            sink.write(CANCELLED_TEXT)
            return TurnOutcome.CANCELLED

        return self.respond_without_function(prompt, sink)

    @staticmethod
    def respond_without_function(prompt: str, sink: ResponseSink) -> TurnOutcome:
        """未解析到函数调用时的固定回复"""
        if GREETING_PATTERN.search(prompt):
            sink.write(GREETING_TEXT)
            return TurnOutcome.GREETING

        if HELP_PATTERN.search(prompt):
            sink.write(HELP_TEXT)
            return TurnOutcome.HELP

        sink.write(f"你说的是: \"{prompt}\"")
        sink.write(ECHO_SUGGESTIONS)
        return TurnOutcome.ECHO


def create_default_handlers() -> list:
    """四类内置处理器（协作方使用全局配置）"""
    from Tools.log_tools import LogToolHandler
    from Tools.math_tools import MathToolHandler
    from Tools.portfolio_tools import PortfolioToolHandler
    from Tools.script_tools import ScriptToolHandler

    return [MathToolHandler(), PortfolioToolHandler(), ScriptToolHandler(), LogToolHandler()]


def create_conversation_controller(
    model: LanguageModel,
    registry: Optional[FunctionRegistry] = None,
    handlers: Optional[Iterable[BaseToolHandler]] = None,
) -> ConversationController:
    """
    创建对话控制器

    注册表只构建一次，并按引用传给解析器与分发器。

    Args:
        model: 语言模型协作方
        registry: 函数注册表，默认包含全部内置函数
        handlers: 处理器列表，默认使用四类内置处理器

    Returns:
        ConversationController: 控制器实例
    """
    if registry is None:
        registry = build_default_registry()
    handlers = list(handlers) if handlers is not None else create_default_handlers()
    resolver = IntentResolver(model, registry)
    dispatcher = Dispatcher(registry, handlers)
    logger.info("对话控制器已创建: %s 个函数, %s 个处理器", len(registry), len(handlers))
    return ConversationController(model, resolver, dispatcher)


__all__ = [
    "TurnOutcome",
    "ConversationController",
    "create_default_handlers",
    "create_conversation_controller",
]
