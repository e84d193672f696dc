from dataclasses import replace

from tinycss2.ast import FunctionBlock

from cssvars.resolver import BLOCKS, is_var_function, parse_value
from cssvars.stylesheet import (
    Declaration,
    FontFaceRule,
    KeyframesRule,
    PageRule,
    StatementRule,
)


def _contains_var(tokens) -> bool:
    for token in tokens:
        if is_var_function(token):
            return True
        if isinstance(token, FunctionBlock) and _contains_var(token.arguments):
            return True
        if isinstance(token, BLOCKS) and _contains_var(token.content):
            return True
    return False


def has_var_function(value: str) -> bool:
    return "var(" in value.lower() and _contains_var(parse_value(value))


def _block_has_var(declarations) -> bool:
    return any(has_var_function(d.value) for d in declarations)


def should_retain(declaration: Declaration, rule, options) -> bool:
    """Whether *declaration* of *rule* survives the static-content filter.

    Font faces, animations and other block at-rules are all-or-nothing:
    when any declaration in them uses ``var()`` every declaration is kept.
    """
    if options.preserve_static:
        return True
    if isinstance(rule, KeyframesRule):
        return any(_block_has_var(k.declarations) for k in rule.keyframes)
    if isinstance(rule, (FontFaceRule, PageRule)):
        return _block_has_var(rule.declarations)
    return declaration.is_custom_property or has_var_function(declaration.value)


def _filter_rule(rule, options):
    if isinstance(rule, StatementRule):
        return None
    if isinstance(rule, KeyframesRule):
        declarations = (d for k in rule.keyframes for d in k.declarations)
        if any(should_retain(d, rule, options) for d in declarations):
            return rule
        return None
    rule = replace(
        rule,
        declarations=tuple(
            d for d in rule.declarations if should_retain(d, rule, options)
        ),
    )
    if not isinstance(rule, FontFaceRule):
        rule = replace(rule, rules=filter_rules(rule.rules, options))
    if rule.declarations or getattr(rule, "rules", ()):
        return rule
    return None


def filter_rules(rules, options) -> tuple:
    """Drop static content when ``preserve_static`` is off.

    Nested rules are filtered recursively; a rule left with nothing in it
    is dropped along with block-less statements.
    """
    if options.preserve_static:
        return tuple(rules)
    filtered = (_filter_rule(rule, options) for rule in rules)
    return tuple(rule for rule in filtered if rule is not None)
