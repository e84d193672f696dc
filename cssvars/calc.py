import tinycss2
from tinycss2.ast import (
    DimensionToken,
    FunctionBlock,
    NumberToken,
    ParenthesesBlock,
    PercentageToken,
)

from cssvars.resolver import BLOCKS, parse_value

MATH_FUNCTIONS = frozenset(("calc", "-webkit-calc", "-moz-calc"))
DEFAULT_PRECISION = 5


def is_math_function(token) -> bool:
    return isinstance(token, FunctionBlock) and token.lower_name in MATH_FUNCTIONS


def flatten_tokens(tokens, nested: bool = False) -> list:
    result = []
    for token in tokens:
        if is_math_function(token):
            arguments = flatten_tokens(token.arguments, True)
            line, column = token.source_line, token.source_column
            if nested:
                token = ParenthesesBlock(line, column, arguments)
            else:
                token = FunctionBlock(line, column, token.name, arguments)
        elif isinstance(token, FunctionBlock):
            arguments = flatten_tokens(token.arguments)
            token = FunctionBlock(
                token.source_line, token.source_column, token.name, arguments
            )
        elif isinstance(token, BLOCKS):
            content = flatten_tokens(token.content, nested)
            token = type(token)(token.source_line, token.source_column, content)
        result.append(token)
    return result


def flatten_calc(value: str) -> str:
    """Turn ``calc()`` nested inside ``calc()`` into plain parentheses.

    ``calc(1 + calc(2 + 3))`` becomes ``calc(1 + (2 + 3))``.
    """
    return tinycss2.serialize(flatten_tokens(parse_value(value)))


class CalcError(ValueError):
    pass


class _Evaluator:
    def __init__(self, tokens):
        self.tokens = [t for t in tokens if t.type not in ("whitespace", "comment")]
        self.pos = 0

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]

    def next(self):
        token = self.peek()
        if token is None:
            raise CalcError("unexpected end of expression")
        self.pos += 1
        return token

    def evaluate(self) -> tuple[float, str]:
        value = self.sum()
        if self.peek() is not None:
            raise CalcError(f"unexpected {self.peek().type} token")
        return value

    def sum(self):
        number, unit = self.product()
        while self.peek() is not None and self.peek().type == "literal":
            operator = self.peek().value
            if operator not in ("+", "-"):
                break
            self.pos += 1
            right, right_unit = self.product()
            if unit != right_unit:
                raise CalcError(f"cannot combine {unit!r} and {right_unit!r}")
            number = number + right if operator == "+" else number - right
        return number, unit

    def product(self):
        number, unit = self.operand()
        while self.peek() is not None and self.peek().type == "literal":
            operator = self.peek().value
            if operator not in ("*", "/"):
                break
            self.pos += 1
            right, right_unit = self.operand()
            if operator == "*":
                if unit and right_unit:
                    raise CalcError("cannot multiply two dimensions")
                number, unit = number * right, unit or right_unit
            else:
                if right_unit or right == 0:
                    raise CalcError("divisor must be a non-zero number")
                number = number / right
        return number, unit

    def operand(self):
        token = self.next()
        if token.type == "number":
            return token.value, ""
        if token.type == "percentage":
            return token.value, "%"
        if token.type == "dimension":
            return token.value, token.lower_unit
        if isinstance(token, ParenthesesBlock):
            return _Evaluator(token.content).evaluate()
        if is_math_function(token):
            return _Evaluator(token.arguments).evaluate()
        raise CalcError(f"unexpected {token.type} token")


def format_number(number: float, precision: int) -> str:
    text = f"{number:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _number_token(token, number: float, unit: str, precision: int):
    line, column = token.source_line, token.source_column
    representation = format_number(number, precision)
    value = float(representation)
    int_value = int(value) if value.is_integer() else None
    if not unit:
        return NumberToken(line, column, value, int_value, representation)
    if unit == "%":
        return PercentageToken(line, column, value, int_value, representation)
    return DimensionToken(line, column, value, int_value, representation, unit)


def reduce_tokens(tokens, precision: int = DEFAULT_PRECISION) -> list:
    result = []
    for token in tokens:
        if is_math_function(token):
            try:
                number, unit = _Evaluator(token.arguments).evaluate()
            except CalcError:
                pass
            else:
                result.append(_number_token(token, number, unit, precision))
                continue
        if isinstance(token, FunctionBlock):
            arguments = reduce_tokens(token.arguments, precision)
            token = FunctionBlock(
                token.source_line, token.source_column, token.name, arguments
            )
        elif isinstance(token, BLOCKS):
            content = reduce_tokens(token.content, precision)
            token = type(token)(token.source_line, token.source_column, content)
        result.append(token)
    return result


def reduce_calc(value: str, precision: int = DEFAULT_PRECISION) -> str:
    """Evaluate ``calc()`` expressions whose operands are all numeric.

    ``calc(50.12345% - 12%)`` with precision 2 becomes ``38.12%``. An
    expression mixing units that cannot be combined is left untouched.
    """
    return tinycss2.serialize(reduce_tokens(parse_value(value), precision))


def fix_calc(
    value: str, reduce: bool = False, precision: int = DEFAULT_PRECISION
) -> str:
    tokens = flatten_tokens(parse_value(value))
    if reduce:
        tokens = reduce_tokens(tokens, precision)
    return tinycss2.serialize(tokens)
