"""
取消信号模块

为一次对话轮次提供协程安全的取消令牌。语言模型流式读取与外部进程执行都会与
令牌竞争，用户取消后尽快结束当前轮次。

使用示例:
    from core.cancellation import CancellationToken, run_cancellable

    token = CancellationToken()
    result = await run_cancellable(some_coroutine(), token)

    # 另一个任务中
    token.cancel()
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from core.tool_errors import OperationCancelledError

T = TypeVar("T")


class CancellationToken:
    """
    取消令牌

    基于 asyncio.Event，一旦取消不可恢复。
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        """是否已取消"""
        return self._event.is_set()

    def cancel(self) -> None:
        """发出取消信号"""
        self._event.set()

    async def wait(self) -> None:
        """等待取消信号"""
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        """
        已取消时抛出异常

        Raises:
            OperationCancelledError: 令牌已被取消
        """
        if self.is_cancelled:
            raise OperationCancelledError("操作已被用户取消")


async def run_cancellable(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken] = None,
) -> T:
    """
    在取消令牌的监督下执行一个可等待对象

    令牌先触发时，取消正在执行的任务并抛出 OperationCancelledError。

    Args:
        awaitable: 需要执行的协程
        token: 取消令牌，为 None 时直接等待

    Returns:
        协程的返回值

    Raises:
        OperationCancelledError: 执行过程中令牌被取消
    """
    if token is None:
        return await awaitable

    token.raise_if_cancelled()

    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        waiter.cancel()

    if work in done:
        return work.result()

    work.cancel()
    try:
        await work
    except asyncio.CancelledError:
        pass
    raise OperationCancelledError("操作已被用户取消")


__all__ = [
    "CancellationToken",
    "run_cancellable",
]
