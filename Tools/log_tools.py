"""
日志分析工具模块

提供三个函数：
    - ListLogConfigurations()：列出 config/log_files.yaml 中的日志文件配置
    - ReadLogFile(logIdentifier, maxEntries?)：提取最近的错误行
    - AnalyzeLogErrors(logIdentifier, maxEntries?)：提取错误行后交给语言模型诊断

logIdentifier 可以是已存在的文件路径，也可以是 "environment component" 形式，
后者在配置列表中按不区分大小写的方式查找。

设计约束:
    - 错误行按关键字（小写子串）匹配，空白行忽略
    - 结果按行号倒序（最新的在前），截取 maxEntries 条（默认 4）
    - 没有匹配行时不调用语言模型
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from config.settings import Settings, get_settings
from core.config_loader import LogFileConfig, load_log_file_configs
from core.prompts.tool_prompts import LOG_ANALYSIS_PROMPT
from core.response_sink import ResponseSink
from core.tool_errors import ArgumentValidationError, CollaboratorError, ExternalIOError
from Tools.baseTool import BaseToolHandler, ToolContext, relay_model_answer, require_arity
from Tools.tool_spec import FunctionCategory, FunctionSpec

logger = logging.getLogger(__name__)

ERROR_KEYWORDS = (
    "exception", "error", "fail", "failed", "failure",
    "critical", "fatal", "panic", "crash", "abort",
    "warning", "warn", "severe", "alert",
)

TIMESTAMP_PATTERN = re.compile(
    r"(\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}|\d{2}-\d{2}-\d{4})[\sT](\d{2}:\d{2}:\d{2})"
)

DEFAULT_MAX_ENTRIES = 4

USAGE_EXAMPLES = (
    "\"Analyze logs from production api\"（使用已配置的日志）",
    "\"Check dev frontend errors\"（使用已配置的日志）",
    "\"Analyze logs from /var/log/app.log\"（直接路径）",
    "\"List log configurations\"（查看可用日志）",
)


LOG_FUNCTION_SPECS: Dict[str, FunctionSpec] = {
    "AnalyzeLogErrors": FunctionSpec(
        name="AnalyzeLogErrors",
        category=FunctionCategory.LOG,
        parameter_names=("logIdentifier", "maxEntries?"),
        description="分析日志文件中的错误并给出 AI 诊断与解决方案",
        usage_example="Analyze logs from production api",
    ),
    "ReadLogFile": FunctionSpec(
        name="ReadLogFile",
        category=FunctionCategory.LOG,
        parameter_names=("logIdentifier", "maxEntries?"),
        description="读取日志文件并提取错误条目",
        usage_example="Read log file dev frontend",
    ),
    "ListLogConfigurations": FunctionSpec(
        name="ListLogConfigurations",
        category=FunctionCategory.LOG,
        parameter_names=(),
        description="列出已配置的日志文件（环境、组件、路径）",
        usage_example="List log configurations",
    ),
}


class LogOperation(str, Enum):
    ANALYZE = "AnalyzeLogErrors"
    READ = "ReadLogFile"
    LIST = "ListLogConfigurations"


@dataclass(frozen=True)
class LogInvocation:
    operation: LogOperation
    identifier: Optional[str] = None
    max_entries: int = DEFAULT_MAX_ENTRIES


@dataclass(frozen=True)
class LogEntry:
    line_number: int
    text: str
    timestamp: Optional[str] = None

    def render(self) -> str:
        stamp = f", {self.timestamp}" if self.timestamp else ""
        return f"[Line {self.line_number}{stamp}] {self.text}"


@dataclass(frozen=True)
class LogTarget:
    path: Path
    environment: Optional[str] = None
    component: Optional[str] = None

    @property
    def label(self) -> str:
        """文件路径，按配置解析时附带 (environment - component)"""
        if self.environment and self.component:
            return f"{self.path} ({self.environment} - {self.component})"
        return str(self.path)


class LogConfigurationNotFoundError(ExternalIOError):
    """environment/component 在配置列表中不存在"""

    def __init__(self, environment: str, component: str) -> None:
        super().__init__(
            f"未找到日志配置: {environment} - {component}",
            details={"environment": environment, "component": component},
        )
        self.environment = environment
        self.component = component


class InvalidLogIdentifierError(ExternalIOError):
    """单个词且不是已存在的文件，既不能当路径也不能当配置"""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"无效的日志标识: {identifier}", details={"identifier": identifier})
        self.identifier = identifier


# ---------------------------------------------------------------------------
# 纯函数：提取、解析、渲染
# ---------------------------------------------------------------------------

def extract_error_entries(text: str, max_entries: int = DEFAULT_MAX_ENTRIES) -> List[LogEntry]:
    """
    从日志文本中提取错误行

    Args:
        text: 日志全文
        max_entries: 最多返回条数

    Returns:
        List[LogEntry]: 按行号严格倒序的条目
    """
    entries: List[LogEntry] = []
    for index, line in enumerate(text.split("\n")):
        stripped = line.strip()
        if not stripped:
            continue
        lowered = line.lower()
        if not any(keyword in lowered for keyword in ERROR_KEYWORDS):
            continue
        match = TIMESTAMP_PATTERN.search(line)
        entries.append(LogEntry(
            line_number=index + 1,
            text=stripped,
            timestamp=match.group(0) if match else None,
        ))

    entries.sort(key=lambda entry: entry.line_number, reverse=True)
    return entries[:max_entries]


def read_log_file(path: Path, max_entries: int = DEFAULT_MAX_ENTRIES) -> List[LogEntry]:
    """
    读取日志文件并提取错误行

    Raises:
        ExternalIOError: 文件不存在或无法读取
    """
    path = Path(path)
    if not path.is_file():
        raise ExternalIOError(f"日志文件不存在: {path}", details={"path": str(path)})
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ExternalIOError(f"无法读取日志文件 {path}: {e}", details={"path": str(path)}, cause=e) from e

    entries = extract_error_entries(text, max_entries)
    logger.info(f"读取日志 {path}: 提取 {len(entries)} 条错误记录")
    return entries


def find_log_config(
    configs: Sequence[LogFileConfig],
    environment: str,
    component: str,
) -> Optional[LogFileConfig]:
    """按 environment/component 查找配置（不区分大小写）"""
    environment = environment.lower()
    component = component.lower()
    for config in configs:
        if config.environment.lower() == environment and config.component.lower() == component:
            return config
    return None


def resolve_log_target(identifier: str, configs: Sequence[LogFileConfig]) -> LogTarget:
    """
    把 logIdentifier 解析为日志文件

    - 已存在的路径直接使用；
    - 多个词时，第一个词为 environment，其余为 component；
    - 只有一个词且文件不存在时视为无效标识。

    Raises:
        InvalidLogIdentifierError: 单个词且文件不存在
        LogConfigurationNotFoundError: environment/component 没有对应配置
    """
    identifier = identifier.strip()
    if Path(identifier).exists():
        return LogTarget(path=Path(identifier))

    parts = identifier.split()
    if len(parts) < 2:
        raise InvalidLogIdentifierError(identifier)

    environment, component = parts[0], " ".join(parts[1:])
    config = find_log_config(configs, environment, component)
    if config is None:
        raise LogConfigurationNotFoundError(environment, component)
    return LogTarget(path=Path(config.path), environment=environment, component=component)


def render_log_configurations(configs: Sequence[LogFileConfig]) -> str:
    """渲染配置列表；列表为空时返回配置说明"""
    if not configs:
        return (
            "📋 **未找到日志配置**\n\n"
            "⚙️ **需要配置**: 请在 `config/log_files.yaml` 中添加日志文件。\n\n"
            "**配置步骤:**\n"
            "1. 打开 `config/log_files.yaml`（或用环境变量 LOG_FILES_CONFIG_PATH 指定其他文件）\n"
            "2. 在 `log_files` 下为每个日志文件添加 environment、component、path\n"
            "3. description 可选，用于说明日志内容\n\n"
            "**配置示例:**\n"
            "```yaml\n"
            "log_files:\n"
            "  - environment: production\n"
            "    component: api\n"
            "    path: /var/log/myapp/prod-api.log\n"
            "    description: Production API logs\n"
            "  - environment: dev\n"
            "    component: frontend\n"
            "    path: ./logs/dev-frontend.log\n"
            "    description: Development frontend logs\n"
            "```"
        )

    blocks = [
        f"**{index}. {config.environment} - {config.component}**\n"
        f"   📁 路径: `{config.path}`\n"
        f"   📝 说明: {config.description or '无'}\n"
        for index, config in enumerate(configs, start=1)
    ]
    return (
        f"📋 **可用日志配置**（共 {len(configs)} 条）\n\n"
        + "\n".join(blocks)
        + "\n\n💡 **用法示例:**\n"
        "- \"Analyze logs from production api\"\n"
        "- \"Check dev frontend errors\"\n"
        "- \"Read staging database logs\""
    )


def _coerce_max_entries(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ArgumentValidationError(f"maxEntries 必须是正整数，实际收到 {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ArgumentValidationError(f"maxEntries 必须是正整数，实际收到 {value!r}")
    return value


# ---------------------------------------------------------------------------
# 处理器
# ---------------------------------------------------------------------------

class LogToolHandler(BaseToolHandler):
    """日志分析处理器"""

    category = FunctionCategory.LOG
    function_names = tuple(LOG_FUNCTION_SPECS)

    def __init__(
        self,
        config_source: Optional[Callable[[], List[LogFileConfig]]] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.config_source = config_source or (
            lambda: load_log_file_configs(self.settings.log_files_config_path)
        )

    def parse_arguments(self, function_name: str, arguments: Sequence[Any]) -> LogInvocation:
        try:
            operation = LogOperation(function_name)
        except ValueError as e:
            raise ArgumentValidationError(f"不支持的日志函数: {function_name}") from e

        if operation is LogOperation.LIST:
            require_arity(function_name, arguments, 0)
            return LogInvocation(operation=operation)

        if len(arguments) < 1:
            raise ArgumentValidationError(f"{function_name} 至少需要 1 个参数（日志标识）")
        if len(arguments) > 2:
            raise ArgumentValidationError(
                f"{function_name} 最多接受 2 个参数（日志标识、条数），实际收到 {len(arguments)} 个"
            )

        identifier = arguments[0]
        if not isinstance(identifier, str) or not identifier.strip():
            raise ArgumentValidationError(f"日志标识必须是非空字符串，实际收到 {identifier!r}")

        max_entries = _coerce_max_entries(
            arguments[1] if len(arguments) == 2 else None,
            self.settings.default_max_log_entries,
        )
        return LogInvocation(operation=operation, identifier=identifier.strip(), max_entries=max_entries)

    def validation_help(self, function_name: str) -> List[str]:
        lines = ["\n**示例**:"]
        lines.extend(f"- {example}" for example in USAGE_EXAMPLES)
        lines.append("\n**配置**: 在 `config/log_files.yaml` 中添加日志文件")
        return lines

    def list_configurations(self) -> str:
        """ListLogConfigurations 的输出"""
        return render_log_configurations(self.config_source())

    async def execute(
        self,
        invocation: LogInvocation,
        prompt: str,
        sink: ResponseSink,
        context: ToolContext,
    ) -> None:
        if invocation.operation is LogOperation.LIST:
            sink.write(f"\n\n{self.list_configurations()}")
            return

        sink.write(f"📂 **处理日志请求**: \"{invocation.identifier}\"")
        sink.write(f"\n📋 **最多错误条数**: {invocation.max_entries}")
        sink.write("\n\n⏳ *正在读取日志文件...*")

        configs = self.config_source()
        try:
            target = resolve_log_target(invocation.identifier or "", configs)
        except LogConfigurationNotFoundError as e:
            logger.warning("日志配置不存在: %s", e.details)
            sink.write(f"\n\n❌ **未找到日志配置**: {e.environment} - {e.component}")
            sink.write(f"\n\n{render_log_configurations(configs)}")
            return
        except InvalidLogIdentifierError as e:
            logger.warning("无效的日志标识: %s", e.details)
            sink.write(
                f"\n\n❌ **无效的日志标识**: \"{e.identifier}\"\n\n"
                "**格式**: 使用以下任一形式:\n"
                "- 文件路径: \"/var/log/app.log\"\n"
                "- 环境 组件: \"production api\" 或 \"dev frontend\""
            )
            sink.write(f"\n\n{render_log_configurations(configs)}")
            return

        try:
            entries = await asyncio.to_thread(read_log_file, target.path, invocation.max_entries)
        except ExternalIOError as e:
            logger.error("日志读取失败: %s", e.to_log_dict())
            sink.write(
                f"\n\n❌ **日志读取失败**\n\n**错误:** {e.message}\n\n"
                f"**标识:** {invocation.identifier}\n\n"
                "*请确认文件存在且可读，或检查日志配置。*"
            )
            return

        if invocation.operation is LogOperation.READ:
            sink.write(f"\n\n{render_read_result(target, entries)}")
            return

        await self._analyze(target, entries, sink, context)

    async def _analyze(
        self,
        target: LogTarget,
        entries: List[LogEntry],
        sink: ResponseSink,
        context: ToolContext,
    ) -> None:
        if not entries:
            sink.write(
                "\n\n📋 **日志分析完成**\n\n"
                "✅ **好消息！** 日志文件中没有发现错误、异常或失败记录。\n\n"
                f"**文件:** {target.label}\n\n"
                "*日志看起来很干净，或只包含普通信息。*"
            )
            return

        analysis_prompt = LOG_ANALYSIS_PROMPT.format(
            log_identity=target.label,
            entry_count=len(entries),
            entries="\n".join(f"{index}. {entry.render()}" for index, entry in enumerate(entries, start=1)),
        )
        sink.write(
            f"\n\n📊 **日志文件分析**\n\n**文件:** {target.label}\n"
            f"**错误条目:** {len(entries)}\n\n---\n\n"
        )
        try:
            await relay_model_answer(context.model, analysis_prompt, sink, context.cancel_token)
        except CollaboratorError as e:
            logger.error("日志 AI 分析失败: %s", e.to_log_dict())
            sink.write(f"\n\n❌ **日志分析失败:** {e.message}")


def render_read_result(target: LogTarget, entries: Sequence[LogEntry]) -> str:
    """ReadLogFile 的输出"""
    header = f"📋 **日志读取完成**\n\n**文件:** {target.label}\n**错误条目:** {len(entries)}"
    if not entries:
        return f"{header}\n\n✅ 没有发现错误记录。"
    body = "\n\n".join(f"{index}. {entry.render()}" for index, entry in enumerate(entries, start=1))
    return f"{header}\n\n**最新错误条目:**\n\n{body}"


__all__ = [
    "LOG_FUNCTION_SPECS",
    "ERROR_KEYWORDS",
    "TIMESTAMP_PATTERN",
    "LogOperation",
    "LogInvocation",
    "LogEntry",
    "LogTarget",
    "LogConfigurationNotFoundError",
    "InvalidLogIdentifierError",
    "extract_error_entries",
    "read_log_file",
    "find_log_config",
    "resolve_log_target",
    "render_log_configurations",
    "render_read_result",
    "LogToolHandler",
]
