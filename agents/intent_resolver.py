"""
意图解析器

把用户输入连同注册表中的函数签名、示例一起交给语言模型，要求其只输出一个 JSON：
    {"functionName": string|null, "args": array, "type": string}

技术栈:
    - core.language_model（发送提示词并完整读取输出流）
    - Pydantic v2（回复结构校验）

设计约束:
    - 尽力而为：语言模型异常、非法 JSON、结构不符、functionName 为空或未注册，
      一律返回 None（不调用函数），不向上抛出
    - 只有取消（OperationCancelledError）会向上传播
    - 不剥离代码块、不修复残缺 JSON、不重试
    - 每个输入最多解析出一个调用

使用示例:
    resolver = IntentResolver(model, build_default_registry())
    call = await resolver.resolve("Add 5 and 3")
    # ResolvedCall(function_name="AddTwoNumbers", arguments=(5, 3), category="math")
"""

import json
import logging
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.cancellation import CancellationToken
from core.language_model import LanguageModel, collect_text
from core.prompts.tool_prompts import INTENT_RESOLVER_PROMPT
from core.tool_errors import OperationCancelledError, ResolutionError
from Tools.registry import FunctionRegistry
from Tools.tool_spec import ResolvedCall

logger = logging.getLogger(__name__)

# (用户输入, 函数名, 参数, 分类)；函数名为 None 表示不调用函数
ResolverExample = Tuple[str, Optional[str], List[Any], str]

DEFAULT_EXAMPLES: Tuple[ResolverExample, ...] = (
    ("Add 5 and 3", "AddTwoNumbers", [5, 3], "math"),
    ("What is 10 times 4?", "MultiplyNumbers", [10, 4], "math"),
    ("Search for John's projects", "SearchPortfolio", ["John's projects"], "api"),
    ("Show all portfolio items", "ListPortfolioItems", [], "api"),
    ("Run script1 with hello and world", "ExecuteScript", ["script1", ["hello", "world"]], "script"),
    ("Execute calculator script with 15 and 25", "ExecuteScript", ["calculator", ["15", "25", "add"]], "script"),
    ("Analyze logs from production api", "AnalyzeLogErrors", ["production api"], "log"),
    ("Read the last 10 errors from /var/log/app.log", "ReadLogFile", ["/var/log/app.log", 10], "log"),
    ("List log configurations", "ListLogConfigurations", [], "log"),
    ("Hello there", None, [], "none"),
)


class FunctionCallReply(BaseModel):
    """语言模型回复的结构"""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    function_name: Optional[str] = Field(default=None, alias="functionName")
    args: Optional[List[Any]] = None
    type: Optional[str] = None


class IntentResolver:
    """
    基于语言模型的意图解析器

    注册表按引用传入；解析器本身不保存任何跨请求状态。
    """

    def __init__(
        self,
        model: LanguageModel,
        registry: FunctionRegistry,
        examples: Sequence[ResolverExample] = DEFAULT_EXAMPLES,
    ) -> None:
        self.model = model
        self.registry = registry
        self.examples = tuple(examples)

    def build_prompt(self, user_input: str) -> str:
        """
        构建发送给语言模型的完整指令

        只为注册表中存在的函数生成示例，不调用函数的示例始终保留。
        """
        function_lines = "\n".join(f"- {spec.signature}: {spec.description}" for spec in self.registry)
        example_lines = []
        for phrase, function_name, args, category in self.examples:
            if function_name is not None and function_name not in self.registry:
                continue
            reply = {"functionName": function_name, "args": args, "type": category}
            example_lines.append(f"- \"{phrase}\" → {json.dumps(reply, ensure_ascii=False)}")

        return INTENT_RESOLVER_PROMPT.format(
            function_lines=function_lines,
            examples="\n".join(example_lines),
            user_input=user_input,
        )

    def parse_reply(self, text: str) -> Optional[ResolvedCall]:
        """
        把语言模型的完整输出解析为调用

        Returns:
            Optional[ResolvedCall]: functionName 为空时返回 None

        Raises:
            ResolutionError: 非法 JSON、结构不符或函数未注册
        """
        # 超长整数会抛出普通 ValueError，过深嵌套会抛出 RecursionError
        try:
            payload = json.loads(text.strip())
        except (ValueError, RecursionError) as e:
            raise ResolutionError(f"语言模型输出不是合法 JSON: {e}", details={"text": text[:200]}, cause=e) from e

        try:
            reply = FunctionCallReply.model_validate(payload)
        except ValidationError as e:
            raise ResolutionError(
                f"语言模型输出结构不符: {e.error_count()} 个字段不合法",
                details={"text": text[:200]},
                cause=e,
            ) from e

        if not reply.function_name:
            return None

        if reply.function_name not in self.registry:
            raise ResolutionError(
                f"未注册的函数: {reply.function_name}",
                details={"function_name": reply.function_name},
            )

        return ResolvedCall(
            function_name=reply.function_name,
            arguments=tuple(reply.args or ()),
            category=reply.type or "unknown",
        )

    async def resolve(
        self,
        prompt: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Optional[ResolvedCall]:
        """
        解析用户输入

        Args:
            prompt: 用户原始输入
            cancel_token: 取消令牌

        Returns:
            Optional[ResolvedCall]: 解析到的调用；任何失败都返回 None

        Raises:
            OperationCancelledError: 等待语言模型时被取消
        """
        instruction = self.build_prompt(prompt)
        try:
            text = await collect_text(self.model, instruction, cancel_token)
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.warning(f"意图解析时语言模型调用失败: {e!r}")
            return None

        try:
            call = self.parse_reply(text)
        except ResolutionError as e:
            logger.info("意图解析失败，按无函数调用处理: %s", e.to_log_dict())
            return None

        if call is None:
            logger.debug("语言模型判断无需调用函数")
        else:
            logger.info("解析到函数调用: %s (type=%s)", call.describe(), call.category)
        return call


__all__ = [
    "DEFAULT_EXAMPLES",
    "FunctionCallReply",
    "IntentResolver",
]
