"""
算术工具模块

提供 AddTwoNumbers / MultiplyNumbers 两个函数。参数必须恰好是两个数字
（int 或 float，布尔值与数字字符串都不接受），结果不做任何舍入。
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence, Union

from core.response_sink import ResponseSink
from core.tool_errors import ArgumentValidationError
from Tools.baseTool import BaseToolHandler, ToolContext, require_arity
from Tools.tool_spec import FunctionCategory, FunctionSpec

logger = logging.getLogger(__name__)

Number = Union[int, float]


MATH_FUNCTION_SPECS: Dict[str, FunctionSpec] = {
    "AddTwoNumbers": FunctionSpec(
        name="AddTwoNumbers",
        category=FunctionCategory.MATH,
        parameter_names=("number1", "number2"),
        description="两个数字相加",
        usage_example="Add 5 and 3",
    ),
    "MultiplyNumbers": FunctionSpec(
        name="MultiplyNumbers",
        category=FunctionCategory.MATH,
        parameter_names=("number1", "number2"),
        description="两个数字相乘",
        usage_example="Multiply 4 by 7",
    ),
}


class ArithmeticOperation(str, Enum):
    ADD = "AddTwoNumbers"
    MULTIPLY = "MultiplyNumbers"

    @property
    def symbol(self) -> str:
        return "+" if self is ArithmeticOperation.ADD else "×"

    def apply(self, left: Number, right: Number) -> Number:
        if self is ArithmeticOperation.ADD:
            return left + right
        return left * right


@dataclass(frozen=True)
class ArithmeticInvocation:
    operation: ArithmeticOperation
    left: Number
    right: Number

    def compute(self) -> Number:
        return self.operation.apply(self.left, self.right)


def _is_number(value: Any) -> bool:
    # bool 是 int 的子类，需要单独排除
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class MathToolHandler(BaseToolHandler):
    """算术处理器"""

    category = FunctionCategory.MATH
    function_names = tuple(MATH_FUNCTION_SPECS)

    def parse_arguments(self, function_name: str, arguments: Sequence[Any]) -> ArithmeticInvocation:
        try:
            operation = ArithmeticOperation(function_name)
        except ValueError as e:
            raise ArgumentValidationError(f"不支持的算术函数: {function_name}") from e

        require_arity(function_name, arguments, 2, "两个数字")
        left, right = arguments
        if not (_is_number(left) and _is_number(right)):
            raise ArgumentValidationError(
                f"{function_name} 的两个参数都必须是数字，实际收到 {left!r} 和 {right!r}",
                details={"function": function_name, "arguments": [repr(left), repr(right)]},
            )
        return ArithmeticInvocation(operation=operation, left=left, right=right)

    def validation_help(self, function_name: str) -> List[str]:
        spec = MATH_FUNCTION_SPECS.get(function_name)
        if spec is None:
            return []
        return [f"**用法**: `{spec.signature}`，例如 \"{spec.usage_example}\""]

    async def execute(
        self,
        invocation: ArithmeticInvocation,
        prompt: str,
        sink: ResponseSink,
        context: ToolContext,
    ) -> None:
        result = invocation.compute()
        logger.info("%s(%s, %s) = %s", invocation.operation.value, invocation.left, invocation.right, result)

        sink.write(f"🧮 **理解的请求**: \"{prompt}\"\n\n")
        sink.write(f"**函数调用**: `{invocation.operation.value}({invocation.left}, {invocation.right})`\n\n")
        sink.write(
            f"**结果**: {invocation.left} {invocation.operation.symbol} {invocation.right} = **{result}**"
        )


__all__ = [
    "MATH_FUNCTION_SPECS",
    "ArithmeticOperation",
    "ArithmeticInvocation",
    "MathToolHandler",
]
