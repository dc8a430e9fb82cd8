"""
日志分析工具测试

日志与配置文件写入临时目录；语言模型使用内存替身。

使用方法:
    python test_log_tools.py
    pytest test_log_tools.py
"""

import asyncio
import sys
import tempfile
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import yaml

from core.config_loader import LogFileConfig, load_log_file_configs
from core.response_sink import MemoryResponseSink
from core.tool_errors import ArgumentValidationError, ExternalIOError
from stub_collaborators import StubLanguageModel, make_settings
from Tools.baseTool import ToolContext
from Tools.log_tools import (
    InvalidLogIdentifierError,
    LogConfigurationNotFoundError,
    LogToolHandler,
    extract_error_entries,
    read_log_file,
    render_log_configurations,
    resolve_log_target,
)
from Tools.tool_spec import ResolvedCall

SAMPLE_LOG = "\n".join([
    "2024-01-15 10:29:58 INFO service started",
    "2024-01-15 10:30:00 ERROR database connection refused",
    "",
    "2024-01-15T10:30:05 WARN retrying in 5s",
    "plain line without keywords",
    "   ",
    "2024-01-15 10:31:00 Exception in thread main: NullPointer",
    "request failed with status 502",
    "2024-01-15 10:32:00 INFO recovered",
])


def _workspace(log_text=None, configs=None):
    """创建临时目录：可选日志文件 app.log 与 log_files.yaml"""
    root = Path(tempfile.mkdtemp())
    if log_text is not None:
        (root / "app.log").write_text(log_text, encoding="utf-8")
    if configs is not None:
        with open(root / "log_files.yaml", "w", encoding="utf-8") as f:
            yaml.safe_dump({"log_files": configs}, f, allow_unicode=True)
    return root


def _handle(root, function_name, arguments, model=None):
    handler = LogToolHandler(settings=make_settings(root))
    sink = MemoryResponseSink()
    call = ResolvedCall(function_name, arguments, "log")
    asyncio.run(handler.handle(call, "prompt", sink, ToolContext(model=model or StubLanguageModel())))
    return sink.text


def test_extract_orders_newest_first():
    """匹配行按行号倒序，截取 maxEntries 条"""
    entries = extract_error_entries(SAMPLE_LOG, max_entries=3)
    assert [entry.line_number for entry in entries] == [8, 7, 4]

    all_entries = extract_error_entries(SAMPLE_LOG, max_entries=100)
    assert [entry.line_number for entry in all_entries] == [8, 7, 4, 2]


def test_extract_fewer_matches_than_max():
    """匹配行少于 maxEntries 时全部返回"""
    entries = extract_error_entries("ok\nfatal: disk full\nok", max_entries=4)
    assert len(entries) == 1
    assert entries[0].line_number == 2
    assert entries[0].text == "fatal: disk full"


def test_timestamp_extraction():
    """提取时间戳：YYYY-MM-DD、MM/DD/YYYY、DD-MM-YYYY，空格或 T 分隔"""
    entries = {entry.line_number: entry for entry in extract_error_entries(SAMPLE_LOG, max_entries=10)}
    assert entries[2].timestamp == "2024-01-15 10:30:00"
    assert entries[4].timestamp == "2024-01-15T10:30:05"
    assert entries[8].timestamp is None
    assert entries[2].render() == "[Line 2, 2024-01-15 10:30:00] 2024-01-15 10:30:00 ERROR database connection refused"
    assert entries[8].render() == "[Line 8] request failed with status 502"

    other_formats = extract_error_entries(
        "01/15/2024 10:30:00 ERROR x\n15-01-2024T10:30:00 FATAL y", max_entries=10
    )
    assert [entry.timestamp for entry in other_formats] == ["15-01-2024T10:30:00", "01/15/2024 10:30:00"]


def test_read_missing_file():
    """文件不存在时抛出 ExternalIOError"""
    try:
        read_log_file(Path(tempfile.mkdtemp()) / "missing.log")
    except ExternalIOError as e:
        assert "日志文件不存在" in e.message
    else:
        raise AssertionError("文件不存在应当报错")


def test_resolve_target_case_insensitive():
    """environment/component 不区分大小写地查找配置"""
    configs = [LogFileConfig(environment="production", component="api", path="/var/log/prod-api.log")]
    target = resolve_log_target("Production API", configs)
    assert target.path == Path("/var/log/prod-api.log")
    assert target.label == "/var/log/prod-api.log (Production - API)"

    try:
        resolve_log_target("staging database", configs)
    except LogConfigurationNotFoundError as e:
        assert (e.environment, e.component) == ("staging", "database")
    else:
        raise AssertionError("不存在的配置应当报错")


def test_resolve_existing_path_first():
    """已存在的文件路径直接使用"""
    root = _workspace(SAMPLE_LOG)
    target = resolve_log_target(str(root / "app.log"), [])
    assert target.path == root / "app.log"
    assert target.environment is None


def test_list_configurations_empty():
    """配置为空时输出配置说明"""
    text = render_log_configurations([])
    assert "未找到日志配置" in text
    assert "log_files:" in text
    assert "environment: production" in text


def test_list_configurations_from_file():
    """从 YAML 读取配置并列出；无效条目被跳过"""
    root = _workspace(configs=[
        {"environment": "production", "component": "api", "path": "/var/log/prod-api.log",
         "description": "Production API logs"},
        {"environment": "dev", "component": "frontend", "path": "./logs/dev-frontend.log"},
        {"environment": "broken"},
    ])
    assert len(load_log_file_configs(root / "log_files.yaml")) == 2

    text = _handle(root, "ListLogConfigurations", ())
    assert "共 2 条" in text
    assert "**1. production - api**" in text
    assert "`/var/log/prod-api.log`" in text
    assert "📝 说明: 无" in text


def test_read_log_by_configuration():
    """ReadLogFile 通过配置找到文件并列出错误条目"""
    root = _workspace(SAMPLE_LOG)
    configs = [{"environment": "dev", "component": "backend", "path": str(root / "app.log")}]
    with open(root / "log_files.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump({"log_files": configs}, f)

    text = _handle(root, "ReadLogFile", ("DEV Backend", 2))
    assert "📋 **日志读取完成**" in text
    assert "(DEV - Backend)" in text
    assert "1. [Line 8] request failed with status 502" in text
    assert "2. [Line 7, 2024-01-15 10:31:00]" in text
    assert "[Line 4" not in text


def test_unknown_configuration_lists_available():
    """配置不存在时报错并附上可用配置"""
    root = _workspace(configs=[{"environment": "production", "component": "api", "path": "/tmp/x.log"}])
    text = _handle(root, "ReadLogFile", ("staging database",))
    assert "❌ **未找到日志配置**: staging - database" in text
    assert "production - api" in text


def test_missing_file_is_reported():
    """配置指向的文件不存在时输出格式化错误"""
    root = _workspace()
    configs = [{"environment": "dev", "component": "backend", "path": str(root / "nope.log")}]
    with open(root / "log_files.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump({"log_files": configs}, f)

    text = _handle(root, "AnalyzeLogErrors", ("dev backend",))
    assert "❌ **日志读取失败**" in text
    assert "日志文件不存在" in text


def test_single_token_identifier_is_invalid():
    """单个词且文件不存在时提示无效标识并附上可用配置"""
    root = _workspace(configs=[{"environment": "production", "component": "api", "path": "/tmp/x.log"}])
    text = _handle(root, "ReadLogFile", ("nonsense",))
    assert "❌ **无效的日志标识**: \"nonsense\"" in text
    assert "production api" in text
    assert "**1. production - api**" in text
    assert "日志读取失败" not in text

    try:
        resolve_log_target(str(root / "missing.log"), [])
    except InvalidLogIdentifierError as e:
        assert e.identifier == str(root / "missing.log")
    else:
        raise AssertionError("单个词且文件不存在应当报错")


def test_analyze_without_errors_skips_model():
    """没有匹配行时不调用语言模型"""
    root = _workspace("INFO all good\nDEBUG still fine\n")
    model = StubLanguageModel(["unused"])
    text = _handle(root, "AnalyzeLogErrors", (str(root / "app.log"),), model)
    assert "好消息" in text
    assert model.call_count == 0


def test_analyze_streams_diagnosis():
    """有匹配行时把条目交给语言模型并流式输出诊断"""
    root = _workspace(SAMPLE_LOG)
    model = StubLanguageModel(["**问题摘要**: 数据库连接被拒绝"])
    text = _handle(root, "AnalyzeLogErrors", (str(root / "app.log"),), model)
    assert model.call_count == 1
    assert "提取条数: 4" in model.prompts[0]
    assert "1. [Line 8] request failed with status 502" in model.prompts[0]
    assert "📊 **日志文件分析**" in text
    assert text.endswith("**问题摘要**: 数据库连接被拒绝")


def test_max_entries_validation():
    """maxEntries 必须是正整数；整数值浮点与数字字符串可接受"""
    handler = LogToolHandler(config_source=list, settings=make_settings(Path(tempfile.mkdtemp())))
    assert handler.parse_arguments("ReadLogFile", ["x.log"]).max_entries == 4
    assert handler.parse_arguments("ReadLogFile", ["x.log", 2.0]).max_entries == 2
    assert handler.parse_arguments("ReadLogFile", ["x.log", "7"]).max_entries == 7
    for bad in [0, -1, 2.5, "many", True]:
        try:
            handler.parse_arguments("ReadLogFile", ["x.log", bad])
        except ArgumentValidationError:
            pass
        else:
            raise AssertionError(f"maxEntries={bad!r} 应当被拒绝")


def test_argument_count_validation():
    """参数个数校验"""
    root = _workspace()
    assert _handle(root, "ListLogConfigurations", ("extra",)).startswith("❌ **错误**")
    assert _handle(root, "ReadLogFile", ()).startswith("❌ **错误**")
    assert "**示例**" in _handle(root, "AnalyzeLogErrors", ("a", 1, 2))


def main():
    """运行所有测试"""
    print("\n" + "=" * 60)
    print("日志分析工具测试")
    print("=" * 60)

    tests = [
        test_extract_orders_newest_first,
        test_extract_fewer_matches_than_max,
        test_timestamp_extraction,
        test_read_missing_file,
        test_resolve_target_case_insensitive,
        test_resolve_existing_path_first,
        test_list_configurations_empty,
        test_list_configurations_from_file,
        test_read_log_by_configuration,
        test_unknown_configuration_lists_available,
        test_missing_file_is_reported,
        test_single_token_identifier_is_invalid,
        test_analyze_without_errors_skips_model,
        test_analyze_streams_diagnosis,
        test_max_entries_validation,
        test_argument_count_validation,
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
