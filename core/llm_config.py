"""
LLM 配置模型定义

使用 Pydantic 描述创建聊天模型所需的参数。

技术栈:
    - Pydantic v2

使用示例:
    from core.llm_config import LLMConfig

    config = LLMConfig(provider="deepseek", model_name="deepseek-chat", api_key="sk-xxx")
    print(config.model_dump_safe())
"""

from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from core.llm_providers import LLMProvider


class LLMConfig(BaseModel):
    """
    LLM 配置模型

    Attributes:
        provider: LLM 提供商
        model_name: 模型名称
        api_key: API 密钥（Ollama 不需要）
        base_url: API 基础 URL（留空使用提供商默认值）
        temperature: 温度参数；意图解析需要稳定的 JSON 输出，默认取较低值
        max_tokens: 最大输出 token 数
        timeout: 单次请求超时时间（秒）
        streaming: 是否以流式方式返回
    """

    provider: LLMProvider = Field(default=LLMProvider.DEEPSEEK, description="LLM 提供商")
    model_name: str = Field(default="deepseek-chat", min_length=1, description="模型名称")
    api_key: Optional[SecretStr] = Field(default=None, description="API 密钥")
    base_url: Optional[str] = Field(default=None, description="API 基础 URL")
    temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="温度参数（0-2）")
    max_tokens: Optional[int] = Field(default=None, ge=1, description="最大输出 token 数")
    timeout: Optional[float] = Field(default=60.0, ge=1.0, description="请求超时时间（秒）")
    streaming: bool = Field(default=True, description="是否流式返回")

    @field_validator("provider", mode="before")
    @classmethod
    def validate_provider(cls, v):
        """字符串形式的 provider 转换为枚举"""
        if isinstance(v, str):
            return LLMProvider.from_string(v)
        return v

    @model_validator(mode="after")
    def check_api_key(self) -> "LLMConfig":
        """需要 API Key 的提供商不允许留空"""
        if self.provider.requires_api_key and not self.get_api_key_value():
            raise ValueError(
                f"提供商 {self.provider.value} 需要 API Key，请设置环境变量 {self.provider.api_key_env}"
            )
        return self

    def get_api_key_value(self) -> Optional[str]:
        """获取 API Key 明文，未设置时返回 None"""
        if self.api_key is None:
            return None
        return self.api_key.get_secret_value() or None

    def model_dump_safe(self) -> dict:
        """导出配置（隐藏 API Key）"""
        data = self.model_dump(exclude={"api_key"})
        data["provider"] = self.provider.value
        data["has_api_key"] = self.get_api_key_value() is not None
        return data

    def cache_key(self) -> str:
        """用于模型实例缓存的键（不包含敏感信息）"""
        return f"{self.provider.value}:{self.model_name}:{self.base_url}:{self.temperature}:{self.streaming}"


__all__ = [
    "LLMConfig",
]
