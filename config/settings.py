"""
应用配置管理模块

使用 Pydantic Settings 实现类型安全的配置管理，支持从环境变量和 .env 文件读取配置。

使用示例:
    from config.settings import get_settings

    settings = get_settings()
    print(settings.portfolio_api_base_url)
    print(settings.log_files_config_path)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    应用配置类

    所有配置项均可通过环境变量或 .env 文件设置，环境变量名称为大写形式
    （如 PORTFOLIO_API_BASE_URL）。API Key 不在这里，由 core.config_loader
    按提供商从环境变量读取。
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # 默认 LLM 配置
    # -------------------------------------------------------------------------
    default_llm_provider: Optional[str] = Field(
        default=None,
        description="覆盖 llm.yaml 中 default.provider 的提供商 (openai/deepseek/dashscope/ollama)",
    )
    default_llm_model: Optional[str] = Field(
        default=None,
        description="覆盖 llm.yaml 中的模型名称",
    )

    # -------------------------------------------------------------------------
    # 作品集 REST 接口
    # -------------------------------------------------------------------------
    portfolio_api_base_url: str = Field(
        default="https://jsonplaceholder.typicode.com",
        description="作品集演示数据的 REST 接口地址",
    )
    portfolio_user_limit: int = Field(
        default=3,
        ge=1,
        description="送入分析提示词的用户数量上限",
    )
    portfolio_project_limit: int = Field(
        default=10,
        ge=1,
        description="请求的项目（posts）数量上限",
    )

    # -------------------------------------------------------------------------
    # 日志文件分析与脚本执行
    # -------------------------------------------------------------------------
    log_files_config_path: Path = Field(
        default=PROJECT_ROOT / "config" / "log_files.yaml",
        description="日志文件配置列表（environment/component/path/description）",
    )
    default_max_log_entries: int = Field(
        default=4,
        ge=1,
        description="未指定时返回的错误日志条数",
    )
    scripts_dir: Path = Field(
        default=PROJECT_ROOT / "scripts",
        description="可执行脚本所在目录",
    )
    script_working_dir: Path = Field(
        default=PROJECT_ROOT,
        description="脚本执行时的工作目录",
    )

    # -------------------------------------------------------------------------
    # 应用配置
    # -------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="运行环境",
    )
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR"]] = Field(
        default=None,
        description="覆盖 logger.yaml 中的日志级别",
    )

    @property
    def is_development(self) -> bool:
        """是否为开发环境"""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """是否为生产环境"""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """
    获取应用配置单例

    Returns:
        Settings: 应用配置实例
    """
    return Settings()


def reset_settings_cache() -> None:
    """
    重置配置缓存

    在配置变更后调用此方法清除缓存，使新配置生效。
    """
    get_settings.cache_clear()


__all__ = [
    "PROJECT_ROOT",
    "Settings",
    "get_settings",
    "reset_settings_cache",
]
