"""
响应输出模块

ResponseSink 是只追加、保持顺序的 markdown 片段接收方。处理器在得到最终结果前
就会写入进度行，因此用户看到的是流式输出。
"""

import sys
from typing import List, Optional, Protocol, TextIO, runtime_checkable


@runtime_checkable
class ResponseSink(Protocol):
    """markdown 片段输出接口"""

    def write(self, markdown: str) -> None:
        ...


class MemoryResponseSink:
    """在内存中按顺序收集片段（测试与嵌入调用使用）"""

    def __init__(self) -> None:
        self.fragments: List[str] = []

    def write(self, markdown: str) -> None:
        self.fragments.append(markdown)

    @property
    def text(self) -> str:
        """全部片段拼接后的文本"""
        return "".join(self.fragments)


class ConsoleResponseSink:
    """直接写到终端，每个片段写完立即刷新"""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream or sys.stdout

    def write(self, markdown: str) -> None:
        self._stream.write(markdown)
        self._stream.flush()


__all__ = [
    "ResponseSink",
    "MemoryResponseSink",
    "ConsoleResponseSink",
]
