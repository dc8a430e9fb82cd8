"""
Core 模块

提供 LLM 工厂、配置加载、语言模型/输出协作方接口、取消令牌与错误类型。

主要组件:
    - LLMFactory: 聊天模型创建工厂
    - LLMConfig / LLMProvider: LLM 配置与提供商枚举
    - load_llm_config / load_log_file_configs: 配置加载函数
    - LanguageModel / ChatModelLanguageModel / collect_text: 语言模型协作方
    - ResponseSink / MemoryResponseSink / ConsoleResponseSink: 输出协作方
    - CancellationToken: 单轮对话取消令牌

使用示例:
    from core import LLMFactory, ChatModelLanguageModel, load_llm_config

    llm = LLMFactory.create_llm_cached(load_llm_config())
    model = ChatModelLanguageModel(llm)
"""

from core.cancellation import CancellationToken, run_cancellable
from core.config_loader import LogFileConfig, load_llm_config, load_log_file_configs, load_yaml_config
from core.language_model import ChatModelLanguageModel, LanguageModel, collect_text, stream_text
from core.llm_config import LLMConfig
from core.llm_factory import LLMFactory
from core.llm_providers import LLM_PROVIDER_INFO, LLMProvider
from core.response_sink import ConsoleResponseSink, MemoryResponseSink, ResponseSink

__all__ = [
    "CancellationToken",
    "run_cancellable",
    "LLMFactory",
    "LLMConfig",
    "LLMProvider",
    "LLM_PROVIDER_INFO",
    "LogFileConfig",
    "load_llm_config",
    "load_log_file_configs",
    "load_yaml_config",
    "LanguageModel",
    "ChatModelLanguageModel",
    "collect_text",
    "stream_text",
    "ResponseSink",
    "MemoryResponseSink",
    "ConsoleResponseSink",
]
