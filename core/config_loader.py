"""
配置加载器模块

从 YAML 配置文件和环境变量加载 LLM 配置与日志文件配置列表。

技术栈:
    - PyYAML
    - Pydantic v2

设计约束:
    - API Key 与 Base URL 只从环境变量读取（入口处用 python-dotenv 加载 .env）
    - 日志文件配置列表只读，缺失文件视为空列表

使用示例:
    from core.config_loader import load_llm_config, load_log_file_configs

    config = load_llm_config(provider="dashscope")
    log_configs = load_log_file_configs()
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from config.settings import get_settings
from core.llm_config import LLMConfig
from core.llm_providers import LLMProvider

logger = logging.getLogger(__name__)

# 配置文件路径
CONFIG_DIR = Path(__file__).parent.parent / "config"
LLM_CONFIG_FILE = CONFIG_DIR / "llm.yaml"


class LogFileConfig(BaseModel):
    """
    一条日志文件配置

    Attributes:
        environment: 环境名（production / staging / dev ...）
        component: 组件名（api / frontend / database ...）
        path: 日志文件路径
        description: 说明（可选）
    """

    environment: str = Field(min_length=1)
    component: str = Field(min_length=1)
    path: str = Field(min_length=1)
    description: Optional[str] = None

    @field_validator("environment", "component", "path")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


def load_yaml_config(path: Path = LLM_CONFIG_FILE) -> Dict[str, Any]:
    """
    从 YAML 文件加载配置

    Args:
        path: 配置文件路径，默认 config/llm.yaml

    Returns:
        dict: 配置字典（空文件返回空字典）

    Raises:
        FileNotFoundError: 如果配置文件不存在
    """
    if not path.exists():
        raise FileNotFoundError(f"配置文件不存在: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_llm_config(provider: Optional[str] = None) -> LLMConfig:
    """
    加载 LLM 配置

    提供商的确定顺序：参数 > 环境变量 DEFAULT_LLM_PROVIDER > llm.yaml 的 default 段。

    Args:
        provider: 提供商名称（openai/deepseek/dashscope/ollama）

    Returns:
        LLMConfig: LLM 配置对象

    Raises:
        ValueError: 如果提供商不支持或配置无效
    """
    yaml_config = load_yaml_config()
    settings = get_settings()

    provider = provider or settings.default_llm_provider
    if provider is None:
        config_data = yaml_config.get("default", {})
        provider = config_data.get("provider", LLMProvider.DEEPSEEK.value)
    else:
        config_data = yaml_config.get(provider.strip().lower(), {})
        if not config_data:
            raise ValueError(f"配置文件中未找到提供商 '{provider}' 的配置")

    llm_provider = LLMProvider.from_string(provider)

    api_key_str = os.environ.get(llm_provider.api_key_env)
    base_url = os.environ.get(llm_provider.base_url_env)

    return LLMConfig(
        provider=llm_provider,
        model_name=settings.default_llm_model or config_data.get("model_name", "deepseek-chat"),
        api_key=SecretStr(api_key_str) if api_key_str else None,
        base_url=base_url,
        temperature=config_data.get("temperature", 0.1),
        max_tokens=config_data.get("max_tokens"),
        timeout=config_data.get("timeout", 60.0),
    )


def load_log_file_configs(path: Optional[Path] = None) -> List[LogFileConfig]:
    """
    加载日志文件配置列表

    文件格式为 ``log_files: [{environment, component, path, description}]``，
    也接受顶层直接是列表。校验失败的条目会被跳过并记录警告。

    Args:
        path: 配置文件路径，默认取 Settings.log_files_config_path

    Returns:
        List[LogFileConfig]: 配置列表（文件不存在时为空列表）
    """
    path = Path(path or get_settings().log_files_config_path)
    if not path.exists():
        logger.warning(f"日志文件配置不存在: {path}，视为空列表")
        return []

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or []

    entries = raw.get("log_files", []) if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        logger.warning(f"日志文件配置格式错误（应为列表）: {path}")
        return []

    configs: List[LogFileConfig] = []
    for index, entry in enumerate(entries):
        try:
            configs.append(LogFileConfig.model_validate(entry))
        except ValidationError as e:
            logger.warning(f"跳过第 {index + 1} 条日志文件配置: {e.error_count()} 个字段不合法")

    logger.debug("已加载 %s 条日志文件配置", len(configs))
    return configs


__all__ = [
    "LogFileConfig",
    "load_yaml_config",
    "load_llm_config",
    "load_log_file_configs",
]
