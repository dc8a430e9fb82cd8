"""
LLM 工厂测试脚本

测试提供商解析、配置校验、模型创建与缓存，以及 LangChain 模型到 LanguageModel 协议的适配。
不会发出任何网络请求。

使用方法:
    python test_llm_factory.py
    pytest test_llm_factory.py
"""

import asyncio
import os
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from langchain_core.language_models import GenericFakeChatModel
from langchain_core.messages import AIMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI
from pydantic import ValidationError

from config.settings import reset_settings_cache
from core import ChatModelLanguageModel, LLMConfig, LLMFactory, LLMProvider, collect_text, load_llm_config


def test_provider_from_string():
    """提供商名称忽略大小写与空白"""
    assert LLMProvider.from_string(" DeepSeek ") is LLMProvider.DEEPSEEK
    assert LLMProvider.OLLAMA.requires_api_key is False
    assert LLMProvider.OPENAI.api_key_env == "OPENAI_API_KEY"
    try:
        LLMProvider.from_string("unknown-provider")
    except ValueError as e:
        assert "不支持的 LLM 提供商" in str(e)
    else:
        raise AssertionError("未知提供商应当报错")


def test_api_key_required():
    """需要 API Key 的提供商缺少密钥时配置无效"""
    try:
        LLMConfig(provider="openai", model_name="gpt-4o-mini")
    except ValidationError as e:
        assert "OPENAI_API_KEY" in str(e)
    else:
        raise AssertionError("缺少 API Key 应当报错")

    config = LLMConfig(provider="ollama", model_name="qwen2.5:7b")
    assert config.get_api_key_value() is None


def test_model_dump_safe_hides_key():
    """导出配置时隐藏 API Key"""
    config = LLMConfig(provider="deepseek", model_name="deepseek-chat", api_key="sk-secret")
    data = config.model_dump_safe()
    assert "api_key" not in data
    assert data["has_api_key"] is True
    assert data["provider"] == "deepseek"
    assert "sk-secret" not in repr(data)


def test_create_llm_types_and_cache():
    """按提供商创建对应的 LangChain 模型，相同配置复用实例"""
    LLMFactory.clear_cache()
    try:
        openai_config = LLMConfig(provider="openai", model_name="gpt-4o-mini", api_key="sk-test")
        assert isinstance(LLMFactory.create_llm(openai_config), ChatOpenAI)

        ollama_config = LLMConfig(provider="ollama", model_name="qwen2.5:7b")
        first = LLMFactory.create_llm_cached(ollama_config)
        assert isinstance(first, ChatOllama)
        assert LLMFactory.create_llm_cached(ollama_config) is first
    finally:
        LLMFactory.clear_cache()


def test_load_llm_config_from_environment():
    """从 llm.yaml 与环境变量加载配置"""
    keys = ["DEEPSEEK_API_KEY", "DEEPSEEK_BASE_URL", "DEFAULT_LLM_PROVIDER", "DEFAULT_LLM_MODEL"]
    saved = {key: os.environ.get(key) for key in keys}
    os.environ["DEEPSEEK_API_KEY"] = "sk-from-env"
    os.environ["DEEPSEEK_BASE_URL"] = "https://example.invalid/v1"
    os.environ.pop("DEFAULT_LLM_PROVIDER", None)
    os.environ.pop("DEFAULT_LLM_MODEL", None)
    reset_settings_cache()
    try:
        config = load_llm_config("deepseek")
        assert config.provider is LLMProvider.DEEPSEEK
        assert config.model_name == "deepseek-chat"
        assert config.get_api_key_value() == "sk-from-env"
        assert config.base_url == "https://example.invalid/v1"
        assert config.temperature == 0.1

        try:
            load_llm_config("mistral")
        except ValueError:
            pass
        else:
            raise AssertionError("未配置的提供商应当报错")
    finally:
        for key, value in saved.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        reset_settings_cache()


def test_chat_model_adapter_streams_text():
    """ChatModelLanguageModel 把 LangChain 流式输出转换为文本片段"""
    llm = GenericFakeChatModel(messages=iter([AIMessage(content="hello streaming world")]))
    model = ChatModelLanguageModel(llm)
    assert asyncio.run(collect_text(model, "hi")) == "hello streaming world"


def main():
    """运行所有测试"""
    print("\n" + "=" * 60)
    print("LLM 工厂测试")
    print("=" * 60)

    tests = [
        test_provider_from_string,
        test_api_key_required,
        test_model_dump_safe_hides_key,
        test_create_llm_types_and_cache,
        test_load_llm_config_from_environment,
        test_chat_model_adapter_streams_text,
    ]

    passed = 0
    for test in tests:
        try:
            test()
            print(f"✓ {test.__doc__}")
            passed += 1
        except Exception as e:
            print(f"✗ {test.__doc__}: {e!r}")

    print(f"\n通过: {passed}/{len(tests)}")
    return 0 if passed == len(tests) else 1


if __name__ == "__main__":
    sys.exit(main())
