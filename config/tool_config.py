"""
工具配置管理模块

从 config/tool.yaml 读取各类工具的超时时间与脚本执行器配置。
支持多层级配置优先级：
1. 函数级别配置（categories.<category>.functions.<name>）
2. 分类级别默认配置（categories.<category>.defaults）
3. 全局默认配置（global_defaults）
4. 硬编码默认值

特性：
- 未指定分类时通过函数名自动查找所属分类
- 进程内只加载一次（get_tool_config 单例）
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# 硬编码默认值（最后的兜底）
HARDCODED_TIMEOUT = 60.0
HARDCODED_SCRIPT_TIMEOUT = 30.0
HARDCODED_SCRIPT_EXECUTABLE = "powershell"
HARDCODED_SCRIPT_FLAGS = ["-ExecutionPolicy", "Bypass", "-File"]

# 配置文件路径
CONFIG_FILE = Path(__file__).parent / "tool.yaml"


class ToolConfig:
    """工具配置管理类"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        初始化工具配置

        Args:
            config_path: 配置文件路径，如果为 None 则使用默认路径
        """
        self.config_path = config_path or CONFIG_FILE
        self._config: Dict[str, Any] = {}
        self._function_to_category: Dict[str, str] = {}
        self._load_config()

    def _default_config(self) -> Dict[str, Any]:
        return {
            "global_defaults": {"timeout": HARDCODED_TIMEOUT},
            "categories": {
                "script": {
                    "defaults": {"timeout": HARDCODED_SCRIPT_TIMEOUT},
                    "runner": {
                        "executable": HARDCODED_SCRIPT_EXECUTABLE,
                        "flags": list(HARDCODED_SCRIPT_FLAGS),
                    },
                },
            },
        }

    def _load_config(self) -> None:
        """从 YAML 文件加载配置"""
        try:
            if not self.config_path.exists():
                logger.warning(f"工具配置文件不存在: {self.config_path}，使用硬编码默认值")
                self._config = self._default_config()
            else:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"成功加载工具配置: {self.config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"加载工具配置失败: {e}，使用硬编码默认值", exc_info=True)
            self._config = self._default_config()

        self._build_function_to_category_map()

    def _build_function_to_category_map(self) -> None:
        """构建函数名到分类名的映射"""
        self._function_to_category = {}
        for category, category_config in self._categories().items():
            for function_name in (category_config or {}).get("functions", {}) or {}:
                self._function_to_category[function_name] = category

    def _categories(self) -> Dict[str, Any]:
        return self._config.get("categories", {}) or {}

    def _category_config(self, category: Optional[str]) -> Dict[str, Any]:
        if not category:
            return {}
        return self._categories().get(category, {}) or {}

    def find_category(self, function_name: str) -> Optional[str]:
        """
        根据函数名查找所属分类

        Args:
            function_name: 函数名称

        Returns:
            Optional[str]: 分类名，找不到返回 None
        """
        return self._function_to_category.get(function_name)

    def get_timeout(self, function_name: str, category: Optional[str] = None) -> float:
        """
        获取函数的超时时间（秒）

        Args:
            function_name: 函数名称
            category: 分类名称（可选，为 None 时自动查找）

        Returns:
            float: 超时时间
        """
        if category is None:
            category = self.find_category(function_name)

        category_config = self._category_config(category)

        # 1. 函数级别配置
        function_config = (category_config.get("functions", {}) or {}).get(function_name, {}) or {}
        if "timeout" in function_config:
            return float(function_config["timeout"])

        # 2. 分类级别默认配置
        category_defaults = category_config.get("defaults", {}) or {}
        if "timeout" in category_defaults:
            return float(category_defaults["timeout"])

        # 3. 全局默认配置
        global_defaults = self._config.get("global_defaults", {}) or {}
        if "timeout" in global_defaults:
            return float(global_defaults["timeout"])

        # 4. 硬编码默认值
        return HARDCODED_TIMEOUT

    def get_script_runner(self) -> Tuple[str, List[str]]:
        """
        获取脚本执行器配置

        Returns:
            Tuple[str, List[str]]: (可执行文件, 固定参数列表)
        """
        runner = self._category_config("script").get("runner", {}) or {}
        executable = str(runner.get("executable") or HARDCODED_SCRIPT_EXECUTABLE)
        flags = runner.get("flags")
        if flags is None:
            flags = HARDCODED_SCRIPT_FLAGS
        return executable, [str(flag) for flag in flags]

# 全局单例
_tool_config_instance: Optional[ToolConfig] = None


def get_tool_config() -> ToolConfig:
    """
    获取全局工具配置实例（单例模式）

    Returns:
        ToolConfig: 工具配置实例
    """
    global _tool_config_instance
    if _tool_config_instance is None:
        _tool_config_instance = ToolConfig()
    return _tool_config_instance


__all__ = [
    "ToolConfig",
    "get_tool_config",
]
