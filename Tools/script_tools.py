"""
脚本执行工具模块

ExecuteScript(scriptCode, args?) 通过别名表找到 scripts/ 下的 PowerShell 脚本，
用配置的执行器启动子进程，分别捕获 stdout / stderr。

技术栈:
    - asyncio.create_subprocess_exec（不经过 shell，参数原样传递）
    - config/tool.yaml（执行器、固定参数与超时）

结果判定:
    - 退出码 0 且 stderr 为空：成功，原样展示 stdout
    - 退出码 0 且 stderr 非空：成功但有警告，同时展示两路输出
    - 无法启动 / 超时 / 退出码非 0：失败，展示原始错误信息

使用示例:
    handler = ScriptToolHandler()
    await handler.handle(ResolvedCall("ExecuteScript", ("greeting", ["Alice"])), prompt, sink, context)
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from config.settings import Settings, get_settings
from config.tool_config import ToolConfig, get_tool_config
from core.cancellation import CancellationToken, run_cancellable
from core.response_sink import ResponseSink
from core.tool_errors import ArgumentValidationError, ExternalIOError, OperationCancelledError
from Tools.baseTool import BaseToolHandler, ToolContext
from Tools.tool_spec import FunctionCategory, FunctionSpec

logger = logging.getLogger(__name__)


SCRIPT_FUNCTION_SPECS: Dict[str, FunctionSpec] = {
    "ExecuteScript": FunctionSpec(
        name="ExecuteScript",
        category=FunctionCategory.SCRIPT,
        parameter_names=("scriptCode", "args?"),
        description="执行 PowerShell 脚本，可附带字符串参数列表",
        usage_example="Run script1 with hello and world",
    ),
}

# 别名 -> 脚本文件名（别名不区分大小写）
SCRIPT_ALIASES: Dict[str, str] = {
    "script1": "script1.ps1",
    "script2": "script2.ps1",
    "greeting": "script1.ps1",
    "calculator": "script2.ps1",
}

USAGE_EXAMPLES = (
    "Run script1 with hello and world",
    "Execute calculator script with 15 25 multiply",
)


@dataclass(frozen=True)
class ScriptInvocation:
    script_code: str
    script_file: str
    arguments: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str
    stderr: str


def _decode(data: Optional[bytes]) -> str:
    return (data or b"").decode("utf-8", errors="replace")


class ProcessLauncher:
    """
    子进程启动器

    只负责启动、等待与终止进程；结果判定交给处理器。
    """

    async def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        """
        执行命令并捕获输出

        Args:
            command: 可执行文件及其参数
            cwd: 工作目录
            timeout: 超时时间（秒），超时后终止进程
            cancel_token: 取消令牌，取消后终止进程

        Returns:
            ProcessResult: 退出码与两路输出

        Raises:
            ExternalIOError: 进程无法启动或执行超时
            OperationCancelledError: 执行过程中被取消
        """
        logger.info("启动进程: %s (cwd=%s, timeout=%s)", list(command), cwd, timeout)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExternalIOError(
                f"无法启动进程 {command[0]}: {e}",
                details={"command": list(command)},
                cause=e,
            ) from e

        try:
            stdout, stderr = await run_cancellable(
                asyncio.wait_for(process.communicate(), timeout=timeout),
                cancel_token,
            )
        except asyncio.TimeoutError as e:
            await self._terminate(process)
            raise ExternalIOError(
                f"进程执行超时（{timeout} 秒），已终止",
                details={"command": list(command), "timeout": timeout},
                cause=e,
            ) from e
        except (OperationCancelledError, asyncio.CancelledError):
            await self._terminate(process)
            raise

        logger.info("进程结束: exit_code=%s", process.returncode)
        return ProcessResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=_decode(stdout),
            stderr=_decode(stderr),
        )

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()
        logger.warning("已终止进程 pid=%s", process.pid)


class ScriptToolHandler(BaseToolHandler):
    """脚本执行处理器"""

    category = FunctionCategory.SCRIPT
    function_names = tuple(SCRIPT_FUNCTION_SPECS)

    def __init__(
        self,
        launcher: Optional[ProcessLauncher] = None,
        tool_config: Optional[ToolConfig] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.launcher = launcher or ProcessLauncher()
        self.tool_config = tool_config or get_tool_config()
        self.settings = settings or get_settings()

    def parse_arguments(self, function_name: str, arguments: Sequence[Any]) -> ScriptInvocation:
        if len(arguments) < 1:
            raise ArgumentValidationError(f"{function_name} 至少需要 1 个参数（脚本名）")
        if len(arguments) > 2:
            raise ArgumentValidationError(
                f"{function_name} 最多接受 2 个参数（脚本名、参数列表），实际收到 {len(arguments)} 个"
            )

        script_code = arguments[0]
        if not isinstance(script_code, str) or not script_code.strip():
            raise ArgumentValidationError(f"脚本名必须是非空字符串，实际收到 {script_code!r}")
        script_code = script_code.strip()

        script_file = SCRIPT_ALIASES.get(script_code.lower())
        if script_file is None:
            raise ArgumentValidationError(
                f"脚本 '{script_code}' 不存在。可用脚本: {', '.join(SCRIPT_ALIASES)}",
                details={"script_code": script_code},
            )

        raw_args = arguments[1] if len(arguments) == 2 else None
        return ScriptInvocation(
            script_code=script_code,
            script_file=script_file,
            arguments=self._coerce_script_args(raw_args),
        )

    @staticmethod
    def _coerce_script_args(raw: Any) -> Tuple[str, ...]:
        if raw is None:
            return ()
        # 单个标量视为只有一个参数
        items = raw if isinstance(raw, (list, tuple)) else [raw]
        coerced: List[str] = []
        for item in items:
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                raise ArgumentValidationError(f"脚本参数必须是字符串或数字，实际收到 {item!r}")
            coerced.append(str(item))
        return tuple(coerced)

    def validation_help(self, function_name: str) -> List[str]:
        lines = [f"\n**可用脚本**: {', '.join(SCRIPT_ALIASES)}", "\n**示例**:"]
        lines.extend(f"- \"{example}\"" for example in USAGE_EXAMPLES)
        return lines

    def build_command(self, invocation: ScriptInvocation) -> List[str]:
        """执行器 + 固定参数 + 脚本路径 + 脚本参数"""
        executable, flags = self.tool_config.get_script_runner()
        script_path = Path(self.settings.scripts_dir) / invocation.script_file
        return [executable, *flags, str(script_path), *invocation.arguments]

    async def execute(
        self,
        invocation: ScriptInvocation,
        prompt: str,
        sink: ResponseSink,
        context: ToolContext,
    ) -> None:
        sink.write(f"⚡ **执行 PowerShell 脚本**: \"{invocation.script_code}\"")
        if invocation.arguments:
            sink.write(f"\n📝 **参数**: {', '.join(invocation.arguments)}")
        sink.write("\n\n⏳ *脚本运行中...*")

        command = self.build_command(invocation)
        timeout = self.tool_config.get_timeout("ExecuteScript", FunctionCategory.SCRIPT.value)
        try:
            result = await self.launcher.run(
                command,
                cwd=Path(self.settings.script_working_dir),
                timeout=timeout,
                cancel_token=context.cancel_token,
            )
        except ExternalIOError as e:
            logger.error("脚本执行失败: %s", e.to_log_dict())
            sink.write(f"\n\n{format_failure(e.message)}")
            return

        sink.write(f"\n\n{format_process_result(invocation, result)}")


def format_failure(detail: str) -> str:
    return (
        f"❌ **脚本执行失败:**\n\n```\n{detail}\n```\n\n"
        "**提示:** 请确认 PowerShell 可用且脚本存在。"
    )


def format_process_result(invocation: ScriptInvocation, result: ProcessResult) -> str:
    """
    按退出码与 stderr 渲染执行结果

    退出码非 0 一律视为失败；退出码为 0 时 stderr 非空只算警告。
    """
    if result.exit_code != 0:
        detail = f"进程退出码: {result.exit_code}"
        if result.stdout:
            detail += f"\n\nstdout:\n{result.stdout}"
        if result.stderr:
            detail += f"\n\nstderr:\n{result.stderr}"
        logger.error("脚本 %s 退出码非 0: %s", invocation.script_code, result.exit_code)
        return format_failure(detail)

    if result.stderr:
        logger.warning("脚本 %s 输出了 stderr: %s", invocation.script_code, result.stderr.strip())
        return (
            "⚠️ 脚本执行完成，但有警告:\n\n"
            f"**输出:**\n```\n{result.stdout}\n```\n\n"
            f"**警告:**\n```\n{result.stderr}\n```"
        )

    return (
        "✅ **PowerShell 脚本执行成功！**\n\n"
        f"**脚本:** {invocation.script_code}\n"
        f"**参数:** {', '.join(invocation.arguments) or '无'}\n\n"
        f"**输出:**\n```\n{result.stdout}\n```"
    )


__all__ = [
    "SCRIPT_FUNCTION_SPECS",
    "SCRIPT_ALIASES",
    "ScriptInvocation",
    "ProcessResult",
    "ProcessLauncher",
    "ScriptToolHandler",
    "format_process_result",
]
