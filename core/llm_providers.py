"""
LLM 提供商枚举定义

定义意图解析与分析提示词可以使用的 LLM 提供商。

技术栈:
    - Python 3.12
    - Enum

设计约束:
    - OpenAI、DeepSeek、DashScope 走 OpenAI 兼容接口
    - Ollama 走本地 HTTP 接口，不需要 API Key
    - 支持从字符串转换为枚举值

使用示例:
    from core.llm_providers import LLMProvider

    provider = LLMProvider.from_string("DeepSeek")
    print(provider.value)  # "deepseek"
"""

from enum import Enum
from typing import Any, Dict


class LLMProvider(str, Enum):
    """
    支持的 LLM 提供商

    Attributes:
        OPENAI: OpenAI (GPT-4o 系列)
        DEEPSEEK: DeepSeek (deepseek-chat)
        DASHSCOPE: 阿里通义千问 (qwen-plus, qwen-max)
        OLLAMA: 本地 Ollama 模型
    """
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    DASHSCOPE = "dashscope"
    OLLAMA = "ollama"

    @classmethod
    def from_string(cls, value: str) -> "LLMProvider":
        """
        从字符串创建枚举值（忽略大小写与首尾空白）

        Raises:
            ValueError: 如果提供商不支持
        """
        normalized = value.strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"不支持的 LLM 提供商: {value}") from None

    @property
    def requires_api_key(self) -> bool:
        """该提供商是否必须配置 API Key"""
        return LLM_PROVIDER_INFO[self]["requires_api_key"]

    @property
    def api_key_env(self) -> str:
        """存放 API Key 的环境变量名"""
        return LLM_PROVIDER_INFO[self]["api_key_env"]

    @property
    def base_url_env(self) -> str:
        """存放 Base URL 的环境变量名"""
        return LLM_PROVIDER_INFO[self]["base_url_env"]


# 提供商元数据
LLM_PROVIDER_INFO: Dict[LLMProvider, Dict[str, Any]] = {
    LLMProvider.OPENAI: {
        "name": "OpenAI",
        "models": ["gpt-4o", "gpt-4o-mini"],
        "requires_api_key": True,
        "api_key_env": "OPENAI_API_KEY",
        "base_url_env": "OPENAI_BASE_URL",
        "default_base_url": "https://api.openai.com/v1",
    },
    LLMProvider.DEEPSEEK: {
        "name": "DeepSeek",
        "models": ["deepseek-chat"],
        "requires_api_key": True,
        "api_key_env": "DEEPSEEK_API_KEY",
        "base_url_env": "DEEPSEEK_BASE_URL",
        "default_base_url": "https://api.deepseek.com",
    },
    LLMProvider.DASHSCOPE: {
        "name": "DashScope (阿里通义千问)",
        "models": ["qwen-plus", "qwen-max"],
        "requires_api_key": True,
        "api_key_env": "DASHSCOPE_API_KEY",
        "base_url_env": "DASHSCOPE_BASE_URL",
        "default_base_url": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    },
    LLMProvider.OLLAMA: {
        "name": "Ollama (本地)",
        "models": ["qwen2.5:7b", "llama3.1:8b"],
        "requires_api_key": False,
        "api_key_env": "OLLAMA_API_KEY",
        "base_url_env": "OLLAMA_BASE_URL",
        "default_base_url": "http://localhost:11434",
    },
}


__all__ = [
    "LLMProvider",
    "LLM_PROVIDER_INFO",
]
