"""
语言模型协作方接口模块

把“发送一段提示词、返回异步文本片段流”抽象为 LanguageModel 协议，
解析器与处理器只依赖该协议，不直接依赖具体的 LangChain 模型。

技术栈:
    - LangChain (BaseChatModel.astream)

使用示例:
    from core import LLMFactory, load_llm_config
    from core.language_model import ChatModelLanguageModel, collect_text

    llm = LLMFactory.create_llm(load_llm_config())
    model = ChatModelLanguageModel(llm)
    text = await collect_text(model, "你好")
"""

import logging
from typing import Any, AsyncIterator, Callable, List, Optional, Protocol, runtime_checkable

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage

from core.cancellation import CancellationToken, run_cancellable

logger = logging.getLogger(__name__)


@runtime_checkable
class LanguageModel(Protocol):
    """语言模型协作方：一次调用返回一个文本片段的异步流"""

    def send(self, prompt: str) -> AsyncIterator[str]:
        ...


def _chunk_text(content: Any) -> str:
    """
    从 LangChain 消息块中提取纯文本

    content 可能是字符串，也可能是多模态分段列表。
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return ""


class ChatModelLanguageModel:
    """
    LangChain 聊天模型适配器

    将提示词作为唯一一条用户消息发送，并以流式方式逐块产出文本。
    """

    def __init__(self, llm: BaseChatModel) -> None:
        self._llm = llm

    async def send(self, prompt: str) -> AsyncIterator[str]:
        async for chunk in self._llm.astream([HumanMessage(content=prompt)]):
            text = _chunk_text(chunk.content)
            if text:
                yield text


async def stream_text(
    model: LanguageModel,
    prompt: str,
    on_fragment: Callable[[str], None],
    cancel_token: Optional[CancellationToken] = None,
) -> int:
    """
    读取语言模型的输出流，每个片段交给 on_fragment

    读取过程与取消令牌竞争；取消后停止读取并关闭流。

    Returns:
        int: 片段数量

    Raises:
        OperationCancelledError: 读取过程中被取消
    """
    count = 0

    async def _drain() -> None:
        nonlocal count
        stream = model.send(prompt)
        try:
            async for fragment in stream:
                on_fragment(fragment)
                count += 1
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    await run_cancellable(_drain(), cancel_token)
    return count


async def collect_text(
    model: LanguageModel,
    prompt: str,
    cancel_token: Optional[CancellationToken] = None,
) -> str:
    """
    完整读取语言模型的输出流并拼接为字符串

    Args:
        model: 语言模型协作方
        prompt: 提示词
        cancel_token: 取消令牌（可选）

    Returns:
        str: 拼接后的完整文本

    Raises:
        OperationCancelledError: 读取过程中被取消
    """
    fragments: List[str] = []
    await stream_text(model, prompt, fragments.append, cancel_token)

    text = "".join(fragments)
    logger.debug("语言模型返回 %s 个片段，共 %s 个字符", len(fragments), len(text))
    return text


__all__ = [
    "LanguageModel",
    "ChatModelLanguageModel",
    "stream_text",
    "collect_text",
]
