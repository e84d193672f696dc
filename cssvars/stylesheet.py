import logging
from dataclasses import dataclass, field
from typing import Union

import tinycss2
from tinycss2.ast import (
    AtRule,
    Declaration as Tinycss2Declaration,
    QualifiedRule,
    WhitespaceToken,
)

GROUP_RULES = frozenset(
    (
        "media",
        "supports",
        "document",
        "-moz-document",
        "container",
        "layer",
        "scope",
        "starting-style",
    )
)


@dataclass(frozen=True)
class Declaration:
    name: str
    value: str
    important: bool = False

    @property
    def is_custom_property(self) -> bool:
        return self.name.startswith("--")


@dataclass(frozen=True)
class StyleRule:
    """Selector list plus declarations; also used for keyframe selectors.

    *rules* holds nested rules such as ``&:hover {...}``.
    """

    selectors: tuple[str, ...]
    declarations: tuple[Declaration, ...] = ()
    rules: tuple["Rule", ...] = ()


@dataclass(frozen=True)
class FontFaceRule:
    declarations: tuple[Declaration, ...] = ()


@dataclass(frozen=True)
class KeyframesRule:
    keyword: str
    name: str
    keyframes: tuple[StyleRule, ...] = ()


@dataclass(frozen=True)
class GroupRule:
    """Conditional at-rule holding nested rules, e.g. ``@media``.

    Declarations only appear when the group is nested in a style rule.
    """

    keyword: str
    prelude: str
    rules: tuple["Rule", ...] = ()
    declarations: tuple[Declaration, ...] = ()


@dataclass(frozen=True)
class PageRule:
    """Any other block at-rule, e.g. ``@page`` with its margin boxes."""

    keyword: str
    prelude: str
    declarations: tuple[Declaration, ...] = ()
    rules: tuple["Rule", ...] = ()


@dataclass(frozen=True)
class StatementRule:
    keyword: str
    prelude: str = field(default="")


Rule = Union[StyleRule, FontFaceRule, KeyframesRule, GroupRule, PageRule, StatementRule]


def _normalize(tokens) -> str:
    tokens = [
        WhitespaceToken(t.source_line, t.source_column, " ")
        if t.type == "whitespace"
        else t
        for t in tokens
    ]
    return tinycss2.serialize(tokens).strip()


def split_commas(tokens) -> tuple[str, ...]:
    parts = [[]]
    for token in tokens:
        if token.type == "literal" and token.value == ",":
            parts.append([])
        else:
            parts[-1].append(token)
    return tuple(text for text in map(_normalize, parts) if text)


def _skip(node):
    if node.type == "error":
        logging.debug(
            "css parse error at %d:%d: %s",
            node.source_line,
            node.source_column,
            node.message,
        )
    else:
        logging.debug(
            "ignoring %s at %d:%d", node.type, node.source_line, node.source_column
        )


def _declaration(node: Tinycss2Declaration) -> Declaration:
    value = tinycss2.serialize(node.value).strip()
    return Declaration(node.name, value, node.important)


def _block(content) -> tuple[tuple[Declaration, ...], tuple[Rule, ...]]:
    """Split a block body into its declarations and its nested rules."""
    declarations, rules = [], []
    for node in tinycss2.parse_blocks_contents(
        content, skip_comments=True, skip_whitespace=True
    ):
        if isinstance(node, Tinycss2Declaration):
            declarations.append(_declaration(node))
        elif isinstance(node, (QualifiedRule, AtRule)):
            rules.append(_rule(node))
        else:
            _skip(node)
    return tuple(declarations), tuple(rules)


def _rule(node) -> Rule:
    if isinstance(node, AtRule):
        return _at_rule(node)
    declarations, rules = _block(node.content)
    return StyleRule(split_commas(node.prelude), declarations, rules)


def _rules(nodes) -> tuple[Rule, ...]:
    result = []
    for node in nodes:
        if isinstance(node, (QualifiedRule, AtRule)):
            result.append(_rule(node))
        else:
            _skip(node)
    return tuple(result)


def _at_rule(node: AtRule) -> Rule:
    keyword = node.lower_at_keyword
    prelude = _normalize(node.prelude)
    if node.content is None:
        return StatementRule(node.at_keyword, prelude)
    if keyword.endswith("keyframes"):
        nodes = tinycss2.parse_rule_list(
            node.content, skip_comments=True, skip_whitespace=True
        )
        keyframes = tuple(r for r in _rules(nodes) if isinstance(r, StyleRule))
        return KeyframesRule(node.at_keyword, prelude, keyframes)
    declarations, rules = _block(node.content)
    if keyword == "font-face":
        return FontFaceRule(declarations)
    if keyword in GROUP_RULES:
        return GroupRule(node.at_keyword, prelude, rules, declarations)
    return PageRule(node.at_keyword, prelude, declarations, rules)


def parse_stylesheet(css: str) -> tuple[Rule, ...]:
    """Parse CSS source into rules. Comments are dropped at every depth."""
    return _rules(
        tinycss2.parse_stylesheet(css, skip_comments=True, skip_whitespace=True)
    )


def stringify_declarations(declarations) -> str:
    return "".join(
        f"{d.name}:{d.value}{' !important' if d.important else ''};"
        for d in declarations
    )


def _at(keyword: str, prelude: str) -> str:
    return f"@{keyword} {prelude}" if prelude else f"@{keyword}"


def _wrap(head: str, body: str) -> str:
    return f"{head}{{{body}}}" if body else ""


def stringify_rule(rule: Rule) -> str:
    """Render one rule. A block rule with nothing inside renders as nothing."""
    if isinstance(rule, StatementRule):
        return f"{_at(rule.keyword, rule.prelude)};"
    if isinstance(rule, KeyframesRule):
        return _wrap(_at(rule.keyword, rule.name), stringify(rule.keyframes))
    body = stringify_declarations(rule.declarations)
    if isinstance(rule, FontFaceRule):
        return _wrap("@font-face", body)
    body += stringify(rule.rules)
    if isinstance(rule, StyleRule):
        return _wrap(",".join(rule.selectors), body)
    return _wrap(_at(rule.keyword, rule.prelude), body)


def stringify(rules) -> str:
    return "".join(stringify_rule(rule) for rule in rules)
