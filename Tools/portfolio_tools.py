"""
作品集查询工具模块

SearchPortfolio(query)：依次请求 /users 与 /posts?_limit=N，把结果整理成紧凑结构，
连同用户查询一起交给语言模型分析，并把回答流式写出。
ListPortfolioItems()：请求 /posts，列出前 10 条标题。

技术栈:
    - aiohttp（只读 GET 请求）
    - core.language_model（分析回答）

设计约束:
    - 非 2xx 状态、网络异常、非法 JSON 都转换为 ExternalIOError，由处理器格式化输出
    - 必须在数据收集完成后才调用语言模型
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

from config.settings import Settings, get_settings
from config.tool_config import ToolConfig, get_tool_config
from core.cancellation import run_cancellable
from core.prompts.tool_prompts import PORTFOLIO_ANALYST_PROMPT
from core.response_sink import ResponseSink
from core.tool_errors import ArgumentValidationError, CollaboratorError, ExternalIOError
from Tools.baseTool import BaseToolHandler, ToolContext, relay_model_answer, require_arity
from Tools.tool_spec import FunctionCategory, FunctionSpec

logger = logging.getLogger(__name__)

LIST_DISPLAY_LIMIT = 10


PORTFOLIO_FUNCTION_SPECS: Dict[str, FunctionSpec] = {
    "SearchPortfolio": FunctionSpec(
        name="SearchPortfolio",
        category=FunctionCategory.API,
        parameter_names=("query",),
        description="通过 REST 接口获取作品集数据并用 AI 分析，回答用户的查询",
        usage_example="Search for projects by John",
    ),
    "ListPortfolioItems": FunctionSpec(
        name="ListPortfolioItems",
        category=FunctionCategory.API,
        parameter_names=(),
        description="列出作品集中的全部项目标题",
        usage_example="Show all portfolio items",
    ),
}


class PortfolioOperation(str, Enum):
    SEARCH = "SearchPortfolio"
    LIST = "ListPortfolioItems"


@dataclass(frozen=True)
class PortfolioInvocation:
    operation: PortfolioOperation
    query: Optional[str] = None


class PortfolioApiClient:
    """
    作品集 REST 接口客户端

    每次请求使用独立的 ClientSession，不在轮次之间保留连接。
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        settings: Optional[Settings] = None,
        tool_config: Optional[ToolConfig] = None,
    ) -> None:
        settings = settings or get_settings()
        self.base_url = (base_url or settings.portfolio_api_base_url).rstrip("/")
        if timeout is None:
            timeout = (tool_config or get_tool_config()).get_timeout("SearchPortfolio", FunctionCategory.API.value)
        self.timeout = timeout

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET 请求并解析 JSON

        Raises:
            ExternalIOError: 网络异常、非 2xx 状态或响应不是合法 JSON
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.info(f"GET {url} params={params}")
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.get(url, params=params) as response:
                    response.raise_for_status()
                    return await response.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise ExternalIOError(
                f"HTTP 请求失败: {e.status} {e.message}",
                details={"url": url, "status": e.status},
                cause=e,
            ) from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalIOError(f"网络请求异常: {e!r}", details={"url": url}, cause=e) from e
        except ValueError as e:
            raise ExternalIOError(f"响应不是合法 JSON: {e}", details={"url": url}, cause=e) from e


def _require_list(payload: Any, what: str) -> List[Dict[str, Any]]:
    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ExternalIOError(f"{what} 响应格式不正确（应为对象数组）")
    return payload


def build_portfolio_data(users: Any, posts: Any, user_limit: int = 3) -> Dict[str, Any]:
    """
    把接口数据整理为分析用的紧凑结构

    Returns:
        dict: {"users": 前 user_limit 个用户, "projects": [{id, title, description, userId}]}
    """
    users = _require_list(users, "/users")
    posts = _require_list(posts, "/posts")
    return {
        "users": users[:user_limit],
        "projects": [
            {
                "id": post.get("id"),
                "title": post.get("title"),
                "description": post.get("body"),
                "userId": post.get("userId"),
            }
            for post in posts
        ],
    }


class PortfolioToolHandler(BaseToolHandler):
    """作品集查询处理器"""

    category = FunctionCategory.API
    function_names = tuple(PORTFOLIO_FUNCTION_SPECS)

    def __init__(
        self,
        client: Optional[PortfolioApiClient] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client or PortfolioApiClient(settings=self.settings)

    def parse_arguments(self, function_name: str, arguments: Sequence[Any]) -> PortfolioInvocation:
        try:
            operation = PortfolioOperation(function_name)
        except ValueError as e:
            raise ArgumentValidationError(f"不支持的作品集函数: {function_name}") from e

        if operation is PortfolioOperation.LIST:
            require_arity(function_name, arguments, 0)
            return PortfolioInvocation(operation=operation)

        require_arity(function_name, arguments, 1, "搜索关键词")
        query = arguments[0]
        if not isinstance(query, str) or not query.strip():
            raise ArgumentValidationError(f"{function_name} 的搜索关键词必须是非空字符串，实际收到 {query!r}")
        return PortfolioInvocation(operation=operation, query=query.strip())

    async def execute(
        self,
        invocation: PortfolioInvocation,
        prompt: str,
        sink: ResponseSink,
        context: ToolContext,
    ) -> None:
        if invocation.operation is PortfolioOperation.LIST:
            await self._list_items(sink, context)
        else:
            await self._search(invocation.query or "", sink, context)

    async def fetch_portfolio_data(self, context: ToolContext) -> Dict[str, Any]:
        """两次顺序请求后整理数据"""
        users = await run_cancellable(self.client.get_json("/users"), context.cancel_token)
        posts = await run_cancellable(
            self.client.get_json("/posts", params={"_limit": self.settings.portfolio_project_limit}),
            context.cancel_token,
        )
        return build_portfolio_data(users, posts, user_limit=self.settings.portfolio_user_limit)

    async def _search(self, query: str, sink: ResponseSink, context: ToolContext) -> None:
        sink.write(f"🔍 **搜索作品集**: \"{query}\"")
        sink.write("\n\n⏳ *正在调用 REST 接口并进行 AI 分析...*")

        try:
            portfolio_data = await self.fetch_portfolio_data(context)
        except ExternalIOError as e:
            logger.error("作品集数据获取失败: %s", e.to_log_dict())
            sink.write(f"\n\n❌ **作品集搜索失败:** {e.message}")
            return

        logger.info(
            "作品集数据: %s 个用户, %s 个项目",
            len(portfolio_data["users"]),
            len(portfolio_data["projects"]),
        )
        analysis_prompt = PORTFOLIO_ANALYST_PROMPT.format(
            portfolio_data=json.dumps(portfolio_data, ensure_ascii=False, indent=2),
            query=query,
        )

        sink.write("\n\n🤖 **AI 分析**:\n\n")
        try:
            await relay_model_answer(context.model, analysis_prompt, sink, context.cancel_token)
        except CollaboratorError as e:
            logger.error("作品集分析失败: %s", e.to_log_dict())
            sink.write(f"\n\n❌ **AI 分析失败:** {e.message}")

    async def _list_items(self, sink: ResponseSink, context: ToolContext) -> None:
        sink.write("📋 *正在获取作品集项目...*")
        try:
            posts = _require_list(
                await run_cancellable(self.client.get_json("/posts"), context.cancel_token),
                "/posts",
            )
        except ExternalIOError as e:
            logger.error("作品集项目获取失败: %s", e.to_log_dict())
            sink.write(f"\n\n❌ **获取作品集项目失败:** {e.message}")
            return

        lines = "".join(f"**{post.get('id')}.** {post.get('title')}\n" for post in posts[:LIST_DISPLAY_LIMIT])
        sink.write(f"\n\n📋 **全部作品集项目**（共 {len(posts)} 条）\n\n{lines}")
        if len(posts) > LIST_DISPLAY_LIMIT:
            sink.write(f"\n*仅显示前 {LIST_DISPLAY_LIMIT} 条，可使用搜索查找具体内容。*")


__all__ = [
    "PORTFOLIO_FUNCTION_SPECS",
    "PortfolioOperation",
    "PortfolioInvocation",
    "PortfolioApiClient",
    "PortfolioToolHandler",
    "build_portfolio_data",
]
