"""
测试用协作方替身

根目录 test_*.py 共用：语言模型、进程启动器、作品集客户端的内存实现，
以及指向临时目录的 Settings 构造函数。
"""

import asyncio
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from config.settings import Settings
from core.cancellation import CancellationToken
from core.tool_errors import ExternalIOError
from Tools.script_tools import ProcessResult


class StubLanguageModel:
    """
    按顺序返回预设回复的语言模型

    每次 send 消费一条回复，并按 chunk_size 切成多个片段产出。
    block=True 时每次 send 都挂起；block_after=n 时前 n 次正常回复，之后挂起。
    """

    def __init__(
        self,
        replies: Sequence[str] = (),
        error: Optional[BaseException] = None,
        chunk_size: int = 7,
        block: bool = False,
        block_after: Optional[int] = None,
    ) -> None:
        self.replies = list(replies)
        self.error = error
        self.chunk_size = chunk_size
        self.block = block
        self.block_after = block_after
        self.prompts: List[str] = []

    async def send(self, prompt: str) -> AsyncIterator[str]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        if self.block or (self.block_after is not None and self.call_count > self.block_after):
            await asyncio.Event().wait()
        reply = self.replies.pop(0) if self.replies else ""
        for start in range(0, len(reply), self.chunk_size):
            await asyncio.sleep(0)
            yield reply[start:start + self.chunk_size]

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class StubProcessLauncher:
    """记录命令并返回预设结果的进程启动器"""

    def __init__(self, result: Optional[ProcessResult] = None, error: Optional[ExternalIOError] = None) -> None:
        self.result = result or ProcessResult(exit_code=0, stdout="", stderr="")
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def run(
        self,
        command: Sequence[str],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessResult:
        self.calls.append({"command": list(command), "cwd": cwd, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.result


class StubPortfolioClient:
    """按路径返回预设 JSON 的作品集客户端"""

    def __init__(self, payloads: Optional[Dict[str, Any]] = None, error: Optional[ExternalIOError] = None) -> None:
        self.payloads = payloads or {}
        self.error = error
        self.requests: List[tuple] = []

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self.requests.append((path, params))
        if self.error is not None:
            raise self.error
        return self.payloads[path]


def make_settings(root: Path, **overrides: Any) -> Settings:
    """构造指向临时目录的配置"""
    values: Dict[str, Any] = {
        "log_files_config_path": root / "log_files.yaml",
        "scripts_dir": root / "scripts",
        "script_working_dir": root,
    }
    values.update(overrides)
    return Settings(**values)


SAMPLE_USERS = [
    {"id": 1, "name": "Leanne Graham", "username": "Bret"},
    {"id": 2, "name": "Ervin Howell", "username": "Antonette"},
    {"id": 3, "name": "Clementine Bauch", "username": "Samantha"},
    {"id": 4, "name": "Patricia Lebsack", "username": "Karianne"},
]

SAMPLE_POSTS = [
    {"userId": 1, "id": 1, "title": "design system", "body": "a reusable component library"},
    {"userId": 2, "id": 2, "title": "data pipeline", "body": "nightly ETL jobs"},
]
