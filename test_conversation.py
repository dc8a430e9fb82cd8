"""
对话控制器端到端测试

语言模型、进程启动器与作品集客户端使用内存替身，其余组件均为真实实现。

使用方法:
    python test_conversation.py
    pytest test_conversation.py
"""

import asyncio
import json
import sys
import tempfile
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from agents.conversation import CANCELLED_TEXT, TurnOutcome, create_conversation_controller
from config.tool_config import ToolConfig
from core.cancellation import CancellationToken
from core.response_sink import MemoryResponseSink
from stub_collaborators import (
    SAMPLE_POSTS,
    SAMPLE_USERS,
    StubLanguageModel,
    StubPortfolioClient,
    StubProcessLauncher,
    make_settings,
)
from Tools.log_tools import LogToolHandler
from Tools.math_tools import MathToolHandler
from Tools.portfolio_tools import PortfolioToolHandler
from Tools.script_tools import ProcessResult, ScriptToolHandler


def _controller(model, launcher=None):
    settings = make_settings(Path(tempfile.mkdtemp()))
    handlers = [
        MathToolHandler(),
        PortfolioToolHandler(
            client=StubPortfolioClient({"/users": SAMPLE_USERS, "/posts": SAMPLE_POSTS}),
            settings=settings,
        ),
        ScriptToolHandler(launcher=launcher or StubProcessLauncher(), tool_config=ToolConfig(), settings=settings),
        LogToolHandler(config_source=list, settings=settings),
    ]
    return create_conversation_controller(model, handlers=handlers)


def _turn(model, prompt, launcher=None):
    sink = MemoryResponseSink()
    outcome = asyncio.run(_controller(model, launcher).handle_turn(prompt, sink))
    return outcome, sink.text


def test_add_numbers_end_to_end():
    """"Add 5 and 3" 解析为 AddTwoNumbers 并输出 8"""
    model = StubLanguageModel(['{"functionName":"AddTwoNumbers","args":[5,3],"type":"math"}'])
    outcome, text = _turn(model, "Add 5 and 3")
    assert outcome is TurnOutcome.FUNCTION_CALL
    assert "5 + 3 = **8**" in text
    assert model.call_count == 1


def test_script_end_to_end():
    """脚本调用：输出包含脚本 stdout"""
    model = StubLanguageModel(['{"functionName":"ExecuteScript","args":["script1",["hello","world"]],"type":"script"}'])
    launcher = StubProcessLauncher(ProcessResult(exit_code=0, stdout="Hello, hello world!", stderr=""))
    outcome, text = _turn(model, "Run script1 with hello and world", launcher)
    assert outcome is TurnOutcome.FUNCTION_CALL
    assert "Hello, hello world!" in text
    assert launcher.calls[0]["command"][-2:] == ["hello", "world"]


def test_portfolio_search_end_to_end():
    """作品集搜索：解析一次，分析一次，共两次语言模型调用"""
    model = StubLanguageModel([
        '{"functionName":"SearchPortfolio","args":["design"],"type":"api"}',
        "There is one design project.",
    ])
    outcome, text = _turn(model, "Search for design projects")
    assert outcome is TurnOutcome.FUNCTION_CALL
    assert model.call_count == 2
    assert text.endswith("There is one design project.")


def test_greeting_without_function():
    """未解析到调用且包含问候词时输出问候"""
    model = StubLanguageModel(['{"functionName": null, "args": [], "type": "none"}'])
    outcome, text = _turn(model, "Hi there!")
    assert outcome is TurnOutcome.GREETING
    assert "👋" in text


def test_greeting_requires_whole_word():
    """"this" 不算问候，回显原文"""
    model = StubLanguageModel(['{"functionName": null, "args": [], "type": "none"}'])
    outcome, text = _turn(model, "what is this")
    assert outcome is TurnOutcome.ECHO
    assert text.startswith('你说的是: "what is this"')


def test_help_without_function():
    """包含 help 时输出帮助"""
    model = StubLanguageModel(['{"functionName": null, "args": [], "type": "none"}'])
    outcome, text = _turn(model, "I need HELP")
    assert outcome is TurnOutcome.HELP
    assert "## 🧮 算术" in text


def test_resolver_failure_falls_back_to_echo():
    """语言模型返回非法 JSON 或调用失败时回显"""
    outcome, text = _turn(StubLanguageModel(["sure! I'll add those."]), "add stuff")
    assert outcome is TurnOutcome.ECHO
    assert '"add stuff"' in text

    outcome, _ = _turn(StubLanguageModel(error=ConnectionError("offline")), "add stuff")
    assert outcome is TurnOutcome.ECHO


def test_failed_dispatch_still_ends_turn():
    """分发失败（分类不匹配）也算函数调用轮次，不会再回显"""
    model = StubLanguageModel(['{"functionName":"AddTwoNumbers","args":[1,2],"type":"log"}'])
    outcome, text = _turn(model, "hello, add 1 and 2")
    assert outcome is TurnOutcome.FUNCTION_CALL
    assert "❌" in text
    assert "👋" not in text


def test_cancel_during_resolution():
    """解析时取消：输出取消提示"""
    controller = _controller(StubLanguageModel(block=True))
    sink = MemoryResponseSink()

    async def scenario():
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.05, token.cancel)
        return await controller.handle_turn("Add 5 and 3", sink, token)

    assert asyncio.run(scenario()) is TurnOutcome.CANCELLED
    assert "已取消" in sink.text


def test_oversized_reply_falls_back_to_echo():
    """语言模型返回超长整数时按无函数调用处理，回显原文"""
    reply = '{"functionName":"AddTwoNumbers","args":[' + "1" * 5000 + ',3],"type":"math"}'
    outcome, text = _turn(StubLanguageModel([reply]), "add a big number")
    assert outcome is TurnOutcome.ECHO
    assert '"add a big number"' in text


def _cancel_after_resolution(model, prompt):
    """第二次语言模型调用挂起时取消，返回 (结局, 输出)"""
    controller = _controller(model)
    sink = MemoryResponseSink()

    async def scenario():
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.1, token.cancel)
        return await controller.handle_turn(prompt, sink, token)

    return asyncio.run(scenario()), sink.text


def test_cancel_during_portfolio_analysis():
    """作品集搜索的 AI 分析流式输出时取消：输出取消提示"""
    model = StubLanguageModel(['{"functionName":"SearchPortfolio","args":["design"],"type":"api"}'], block_after=1)
    outcome, text = _cancel_after_resolution(model, "Search for design projects")
    assert outcome is TurnOutcome.CANCELLED
    assert model.call_count == 2
    assert "🤖 **AI 分析**" in text
    assert text.endswith(CANCELLED_TEXT)
    assert "分析失败" not in text


def test_cancel_during_log_analysis():
    """日志 AI 分析流式输出时取消：输出取消提示"""
    log_path = Path(tempfile.mkdtemp()) / "app.log"
    log_path.write_text("2024-01-15 10:30:00 ERROR database connection refused\n", encoding="utf-8")
    reply = json.dumps({"functionName": "AnalyzeLogErrors", "args": [str(log_path)], "type": "log"})
    model = StubLanguageModel([reply], block_after=1)
    outcome, text = _cancel_after_resolution(model, "Analyze logs from app.log")
    assert outcome is TurnOutcome.CANCELLED
    assert model.call_count == 2
    assert "📊 **日志文件分析**" in text
    assert text.endswith(CANCELLED_TEXT)
    assert "分析失败" not in text


def main():
    """运行所有测试"""
    print("\n" + "=" * 60)
    print("对话控制器测试")
    print("=" * 60)

    tests = [
        test_add_numbers_end_to_end,
        test_script_end_to_end,
        test_portfolio_search_end_to_end,
        test_greeting_without_function,
        test_greeting_requires_whole_word,
        test_help_without_function,
        test_resolver_failure_falls_back_to_echo,
        test_failed_dispatch_still_ends_turn,
        test_cancel_during_resolution,
        test_oversized_reply_falls_back_to_echo,
        test_cancel_during_portfolio_analysis,
        test_cancel_during_log_analysis,
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
