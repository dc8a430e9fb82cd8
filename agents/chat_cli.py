"""
终端对话入口

把真实协作方接到对话控制器上：LangChain 聊天模型、终端输出、YAML 配置。

技术栈:
    - LangChain (ChatOpenAI / ChatOllama，经 core.LLMFactory 创建)
    - python-dotenv（加载 .env 中的 API Key）
    - argparse

设计约束:
    - 必须为所选提供商配置 API Key 环境变量（Ollama 除外）
    - 对话进行中按 Ctrl+C 只取消当前轮次；空闲时按 Ctrl+C 退出

使用示例:
    python -m agents.chat_cli
    python -m agents.chat_cli --provider ollama --once "Add 5 and 3"
"""

import argparse
import asyncio
import logging
import signal
from typing import List, Optional

from dotenv import load_dotenv

from agents.conversation import ConversationController, TurnOutcome, create_conversation_controller
from config.settings import get_settings
from core import ChatModelLanguageModel, ConsoleResponseSink, LLMFactory, load_llm_config
from core.cancellation import CancellationToken
from core.logger_config import setup_logging

# 加载环境变量
load_dotenv()

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="自然语言函数调用助手")
    parser.add_argument("--provider", help="LLM 提供商 (openai/deepseek/dashscope/ollama)")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="覆盖日志级别")
    parser.add_argument("--once", metavar="PROMPT", help="只处理一轮对话后退出")
    return parser


async def run_turn(controller: ConversationController, prompt: str, sink: ConsoleResponseSink) -> TurnOutcome:
    """处理一轮对话，期间 Ctrl+C 取消本轮"""
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        # Windows 事件循环不支持 add_signal_handler
        installed = False

    try:
        return await controller.handle_turn(prompt, sink, token)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def main(argv: Optional[List[str]] = None) -> None:
    """
    主函数：创建控制器并进入多轮对话循环

    执行流程:
        1. 安装日志处理器
        2. 按 llm.yaml 与环境变量创建聊天模型
        3. 循环读取用户输入，逐轮交给控制器
    """
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(args.log_level or settings.log_level)

    try:
        llm_config = load_llm_config(args.provider)
        llm = LLMFactory.create_llm_cached(llm_config)
    except (ValueError, FileNotFoundError) as e:
        print(f"配置错误: {e}")
        return

    controller = create_conversation_controller(ChatModelLanguageModel(llm))
    sink = ConsoleResponseSink()

    if args.once:
        await run_turn(controller, args.once, sink)
        print()
        return

    print("=" * 60)
    print("自然语言函数调用助手")
    print("=" * 60)
    print(f"模型: {llm_config.provider.value} / {llm_config.model_name}")
    print("\n功能说明：")
    print("- 算术、作品集查询、脚本执行、日志分析")
    print("- 对话进行中按 Ctrl+C 取消当前轮次")
    print("- 输入 'quit' 或 'exit' 退出")
    print("=" * 60)

    while True:
        user_input = (await asyncio.to_thread(input, "\n你: ")).strip()

        if user_input.lower() in ["quit", "exit", "退出"]:
            print("\n再见！")
            break

        if not user_input:
            continue

        print("\n助手: ", end="", flush=True)
        outcome = await run_turn(controller, user_input, sink)
        logger.debug("本轮结局: %s", outcome.value)
        print()


def run() -> None:
    """命令行入口"""
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, EOFError):
        print("\n\n程序被用户中断")


if __name__ == "__main__":
    run()
