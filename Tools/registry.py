"""
函数注册表模块

把各分类模块中独立定义的函数规范表合并为一个只读注册表。注册表在启动时构建一次，
随后按引用传入意图解析器与分发器。

使用示例:
    from Tools.registry import build_default_registry

    registry = build_default_registry()
    spec = registry.get("AddTwoNumbers")
"""

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from Tools.tool_spec import FunctionCategory, FunctionSpec


class FunctionRegistry:
    """
    只读函数注册表

    重要不变量：
    - 函数名唯一，查找区分大小写；
    - 构建后不可修改。
    """

    def __init__(self, specs: Iterable[FunctionSpec]) -> None:
        table: Dict[str, FunctionSpec] = {}
        for spec in specs:
            if spec.name in table:
                raise ValueError(f"函数名重复注册: {spec.name}")
            table[spec.name] = spec
        self._specs: Mapping[str, FunctionSpec] = MappingProxyType(table)

    @classmethod
    def from_tables(cls, *tables: Mapping[str, FunctionSpec]) -> "FunctionRegistry":
        """
        合并多个分类规范表

        Raises:
            ValueError: 表的键与规范名不一致，或函数名重复
        """
        specs = []
        for table in tables:
            for key, spec in table.items():
                if key != spec.name:
                    raise ValueError(f"规范表键 {key} 与函数名 {spec.name} 不一致")
                specs.append(spec)
        return cls(specs)

    def get(self, name: str) -> Optional[FunctionSpec]:
        return self._specs.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __iter__(self) -> Iterator[FunctionSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def specs(self) -> Mapping[str, FunctionSpec]:
        """只读的 name -> FunctionSpec 映射"""
        return self._specs

    def names_for(self, category: FunctionCategory) -> Tuple[str, ...]:
        """某分类下的全部函数名（按注册顺序）"""
        return tuple(spec.name for spec in self._specs.values() if spec.category == category)

    def categories(self) -> Tuple[FunctionCategory, ...]:
        """注册表中出现过的分类（按首次出现顺序）"""
        seen = []
        for spec in self._specs.values():
            if spec.category not in seen:
                seen.append(spec.category)
        return tuple(seen)


def build_default_registry() -> FunctionRegistry:
    """
    构建包含全部内置函数的注册表

    Returns:
        FunctionRegistry: 算术、作品集、脚本、日志四类函数
    """
    from Tools.log_tools import LOG_FUNCTION_SPECS
    from Tools.math_tools import MATH_FUNCTION_SPECS
    from Tools.portfolio_tools import PORTFOLIO_FUNCTION_SPECS
    from Tools.script_tools import SCRIPT_FUNCTION_SPECS

    return FunctionRegistry.from_tables(
        MATH_FUNCTION_SPECS,
        SCRIPT_FUNCTION_SPECS,
        PORTFOLIO_FUNCTION_SPECS,
        LOG_FUNCTION_SPECS,
    )


__all__ = [
    "FunctionRegistry",
    "build_default_registry",
]
