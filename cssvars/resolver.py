import logging
from typing import Callable, Mapping, Optional

import tinycss2
from tinycss2.ast import (
    CurlyBracketsBlock,
    FunctionBlock,
    ParenthesesBlock,
    SquareBracketsBlock,
)

BLOCKS = (ParenthesesBlock, SquareBracketsBlock, CurlyBracketsBlock)


def is_literal(token, value: str) -> bool:
    return token.type == "literal" and token.value == value


def is_var_function(token) -> bool:
    return isinstance(token, FunctionBlock) and token.lower_name == "var"


def strip_whitespace(tokens: list) -> list:
    start, end = 0, len(tokens)
    while start < end and tokens[start].type == "whitespace":
        start += 1
    while end > start and tokens[end - 1].type == "whitespace":
        end -= 1
    return tokens[start:end]


def parse_value(value: str) -> list:
    tokens = tinycss2.parse_component_value_list(value, skip_comments=True)
    return strip_whitespace(tokens)


def split_var_arguments(function: FunctionBlock):
    """Split ``var()`` arguments into ``(name, fallback, error)``.

    *fallback* is None when the call has no comma. *error* is a warning
    message for a malformed call, in which case the other two are None.
    """
    arguments = strip_whitespace(function.arguments)
    if not arguments:
        return None, None, "var() must contain a non-whitespace string"
    name = arguments[0]
    if name.type != "ident" or not name.value.startswith("--"):
        text = tinycss2.serialize([name])
        return None, None, f'invalid custom property name "{text}" in var()'
    rest = strip_whitespace(arguments[1:])
    if not rest:
        return name.value, None, None
    separator = rest[0]
    if is_literal(separator, ","):
        return name.value, strip_whitespace(rest[1:]), None
    text = tinycss2.serialize([function])
    if separator.type == "error" or is_literal(separator, ";"):
        return None, None, f'missing closing ")" in the value "{text}"'
    return None, None, f'unexpected "{tinycss2.serialize([separator])}" in "{text}"'


def _log_warning(message: str):
    logging.debug(message)


class Resolver:
    """Substitutes ``var()`` references with values from a variable map.

    Resolution state (the chain of names being expanded) is passed down the
    recursion, so one resolver can serve any number of declarations.
    Warnings are collected per reference and only reported once it is
    known that no fallback rescues it. A malformed or undefined reference
    inside a variable's value is reported once however often the variable
    is used.
    """

    def __init__(
        self,
        variables: Mapping[str, str],
        on_warning: Optional[Callable[[str], None]] = None,
    ):
        self.variables = variables
        self.on_warning = on_warning or _log_warning
        self._parsed = {}
        self._reported = set()

    def resolve(self, value: str) -> tuple[str, bool]:
        """Return the resolved *value* and whether every reference resolved."""
        warnings = []
        tokens, resolved = self.resolve_tokens(parse_value(value), warnings)
        for function, message in warnings:
            if (function, message) not in self._reported:
                self._reported.add((function, message))
                self.on_warning(message)
        return tinycss2.serialize(tokens).strip(), resolved

    def resolve_tokens(
        self, tokens, warnings: list, path: frozenset = frozenset()
    ) -> tuple[list, bool]:
        result = []
        resolved = True
        for token in tokens:
            if is_var_function(token):
                replacement, ok = self.resolve_function(token, warnings, path)
                result.extend(replacement)
                resolved = resolved and ok
                continue
            if isinstance(token, FunctionBlock):
                arguments, ok = self.resolve_tokens(token.arguments, warnings, path)
                token = FunctionBlock(
                    token.source_line, token.source_column, token.name, arguments
                )
                resolved = resolved and ok
            elif isinstance(token, BLOCKS):
                content, ok = self.resolve_tokens(token.content, warnings, path)
                token = type(token)(token.source_line, token.source_column, content)
                resolved = resolved and ok
            result.append(token)
        return result, resolved

    def resolve_function(
        self, function: FunctionBlock, warnings: list, path: frozenset
    ):
        name, fallback, error = split_var_arguments(function)
        if error:
            warnings.append((function, error))
            return [function], False

        pending = []
        if name in path:
            pending.append((function, f'circular reference to variable "{name}"'))
        elif name in self.variables:
            tokens, ok = self.resolve_tokens(
                self._tokens(name), pending, path | {name}
            )
            if ok:
                return tokens, True
        elif fallback is None:
            pending.append((function, f'variable "{name}" is undefined'))

        if fallback is not None:
            tokens, ok = self.resolve_tokens(fallback, pending, path)
            if ok:
                return tokens, True
        warnings.extend(pending)
        return [function], False

    def _tokens(self, name: str) -> list:
        if name not in self._parsed:
            self._parsed[name] = parse_value(self.variables[name])
        return self._parsed[name]


def resolve_value(
    value: str,
    variables: Mapping[str, str],
    on_warning: Optional[Callable[[str], None]] = None,
) -> tuple[str, bool]:
    return Resolver(variables, on_warning).resolve(value)
