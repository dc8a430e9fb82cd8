"""
LLM 工厂模块

根据 LLMConfig 创建 LangChain 聊天模型实例。

技术栈:
    - LangChain
    - langchain-openai（OpenAI / DeepSeek / DashScope，均为 OpenAI 兼容接口）
    - langchain-ollama（本地 Ollama）

设计约束:
    - 相同配置复用同一个实例（create_llm_cached）
    - 第三方模型包在真正创建时才导入

使用示例:
    from core import LLMFactory, load_llm_config

    llm = LLMFactory.create_llm_cached(load_llm_config())
"""

import logging
from typing import Callable, Dict

from langchain_core.language_models.chat_models import BaseChatModel

from core.llm_config import LLMConfig
from core.llm_providers import LLMProvider, LLM_PROVIDER_INFO

logger = logging.getLogger(__name__)


class LLMFactory:
    """
    LLM 工厂类

    Example:
        >>> llm = LLMFactory.create_llm(config)
        >>> async for chunk in llm.astream("你好"):
        ...     print(chunk.content, end="")
    """

    _llm_cache: Dict[str, BaseChatModel] = {}

    @classmethod
    def create_llm(cls, config: LLMConfig) -> BaseChatModel:
        """
        根据配置创建 LLM 实例

        Args:
            config: LLM 配置

        Returns:
            BaseChatModel: 聊天模型实例

        Raises:
            ValueError: 如果提供商不支持
        """
        logger.info(f"创建 LLM: provider={config.provider.value}, model={config.model_name}")

        creators: Dict[LLMProvider, Callable[[LLMConfig], BaseChatModel]] = {
            LLMProvider.OPENAI: cls._create_openai_compatible_llm,
            LLMProvider.DEEPSEEK: cls._create_openai_compatible_llm,
            LLMProvider.DASHSCOPE: cls._create_openai_compatible_llm,
            LLMProvider.OLLAMA: cls._create_ollama_llm,
        }
        creator = creators.get(config.provider)
        if creator is None:
            raise ValueError(f"不支持的 LLM 提供商: {config.provider}")
        return creator(config)

    @classmethod
    def create_llm_cached(cls, config: LLMConfig) -> BaseChatModel:
        """
        创建或获取缓存的 LLM 实例

        Args:
            config: LLM 配置

        Returns:
            BaseChatModel: LLM 实例
        """
        cache_key = config.cache_key()
        if cache_key not in cls._llm_cache:
            cls._llm_cache[cache_key] = cls.create_llm(config)
        return cls._llm_cache[cache_key]

    @classmethod
    def _create_openai_compatible_llm(cls, config: LLMConfig) -> BaseChatModel:
        """
        创建 OpenAI 兼容接口的模型（OpenAI / DeepSeek / DashScope）
        """
        from langchain_openai import ChatOpenAI

        base_url = config.base_url or LLM_PROVIDER_INFO[config.provider]["default_base_url"]
        return ChatOpenAI(
            model=config.model_name,
            api_key=config.get_api_key_value(),
            base_url=base_url,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            timeout=config.timeout,
            streaming=config.streaming,
        )

    @classmethod
    def _create_ollama_llm(cls, config: LLMConfig) -> BaseChatModel:
        """
        创建本地 Ollama 模型
        """
        from langchain_ollama import ChatOllama

        base_url = config.base_url or LLM_PROVIDER_INFO[LLMProvider.OLLAMA]["default_base_url"]
        return ChatOllama(
            model=config.model_name,
            base_url=base_url,
            temperature=config.temperature,
            num_predict=config.max_tokens,
        )

    @classmethod
    def clear_cache(cls) -> None:
        """清除所有缓存的 LLM 实例"""
        cls._llm_cache.clear()
        logger.info("LLM 缓存已清除")


__all__ = [
    "LLMFactory",
]
