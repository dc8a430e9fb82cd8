"""
测试工具配置系统

验证从 tool.yaml 读取超时与脚本执行器配置，包括按函数名自动查找所属分类。

使用方法:
    python test_tool_config.py
    pytest test_tool_config.py
"""

import sys
import tempfile
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import config.tool_config as tool_config_module
from config.tool_config import HARDCODED_SCRIPT_FLAGS, ToolConfig, get_tool_config


def test_layered_timeouts():
    """函数级 > 分类级 > 全局默认"""
    config = ToolConfig()
    cases = [
        # (函数名, 分类, 期望超时)
        ("AddTwoNumbers", "math", 5.0),
        ("SearchPortfolio", "api", 10.0),
        ("ExecuteScript", "script", 30.0),
        ("AnalyzeLogErrors", "log", 30.0),
        ("UnknownFunction", "unknown", 60.0),
    ]
    for function_name, category, expected in cases:
        assert config.get_timeout(function_name, category) == expected, function_name


def test_category_auto_detection():
    """未指定分类时按函数名查找"""
    config = ToolConfig()
    assert config.find_category("ExecuteScript") == "script"
    assert config.find_category("ListPortfolioItems") == "api"
    assert config.find_category("AddTwoNumbers") is None
    assert config.get_timeout("ExecuteScript") == 30.0
    assert config.get_timeout("UnknownFunction") == 60.0


def test_script_runner():
    """脚本执行器与固定参数"""
    executable, flags = ToolConfig().get_script_runner()
    assert executable == "powershell"
    assert flags == ["-NoProfile", "-ExecutionPolicy", "Bypass", "-File"]


def test_missing_file_uses_hardcoded_defaults():
    """配置文件不存在时使用硬编码默认值"""
    config = ToolConfig(Path(tempfile.mkdtemp()) / "missing.yaml")
    assert config.get_timeout("ExecuteScript", "script") == 30.0
    assert config.get_timeout("AddTwoNumbers", "math") == 60.0
    assert config.get_script_runner() == ("powershell", HARDCODED_SCRIPT_FLAGS)


def test_custom_config_file():
    """指定配置文件时按其内容查找超时与分类"""
    path = Path(tempfile.mkdtemp()) / "tool.yaml"
    path.write_text(
        "global_defaults:\n  timeout: 12\n"
        "categories:\n  math:\n    functions:\n      AddTwoNumbers:\n        timeout: 1.5\n",
        encoding="utf-8",
    )
    config = ToolConfig(path)
    assert config.get_timeout("AnyFunction") == 12.0
    assert config.get_timeout("AddTwoNumbers") == 1.5
    assert config.find_category("AddTwoNumbers") == "math"


def test_singleton():
    """get_tool_config 返回同一实例"""
    assert get_tool_config() is get_tool_config()


def test_public_interface():
    """模块只导出配置类与单例获取函数，配置不支持运行时重载"""
    assert tool_config_module.__all__ == ["ToolConfig", "get_tool_config"]
    assert not hasattr(tool_config_module, "reload_tool_config")
    assert not hasattr(ToolConfig, "reload")


def main():
    """运行所有测试"""
    print("\n" + "=" * 60)
    print("测试工具配置系统")
    print("=" * 60)

    tests = [
        test_layered_timeouts,
        test_category_auto_detection,
        test_script_runner,
        test_missing_file_uses_hardcoded_defaults,
        test_custom_config_file,
        test_singleton,
        test_public_interface,
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
