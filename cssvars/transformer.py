import logging
from dataclasses import replace
from typing import Optional

from cssvars.calc import fix_calc
from cssvars.config import Options
from cssvars.resolver import Resolver
from cssvars.rule_filter import filter_rules, has_var_function
from cssvars.stylesheet import (
    FontFaceRule,
    GroupRule,
    KeyframesRule,
    PageRule,
    StyleRule,
    parse_stylesheet,
    stringify,
)
from cssvars.variables import collect_variables, merge_variables


class Transformer:
    def __init__(self, options: Optional[Options] = None):
        self.options = options or Options()
        self.resolver = Resolver({}, self.options.on_warning)

    def transform(self, rule):
        if isinstance(rule, FontFaceRule):
            return replace(
                rule, declarations=self.transform_declarations(rule.declarations)
            )
        if isinstance(rule, (StyleRule, GroupRule, PageRule)):
            return replace(
                rule,
                declarations=self.transform_declarations(rule.declarations),
                rules=tuple(map(self.transform, rule.rules)),
            )
        if isinstance(rule, KeyframesRule):
            return replace(rule, keyframes=tuple(map(self.transform, rule.keyframes)))
        return rule

    def transform_declarations(self, declarations) -> tuple:
        options = self.options
        result = []
        for declaration in declarations:
            if declaration.is_custom_property and not options.preserve_vars:
                continue
            if has_var_function(declaration.value):
                value, resolved = self.resolver.resolve(declaration.value)
                if not resolved:
                    logging.debug("%s left with unresolved var()", declaration.name)
                # var(--x,) resolves to nothing; keep the declaration as written
                if value and value != declaration.value:
                    value = fix_calc(
                        value, options.reduce_calc, options.reduce_calc_precision
                    )
                    result.append(replace(declaration, value=value))
                    if options.preserve_vars:
                        result.append(declaration)
                    continue
            result.append(declaration)
        return tuple(result)

    def transform_css(self, css: str) -> str:
        rules = parse_stylesheet(css)
        variables = merge_variables(
            collect_variables(rules, self.options.parse_host), self.options.variables
        )
        logging.debug("resolving css with %d variables", len(variables))
        self.resolver = Resolver(variables, self.options.on_warning)
        rules = filter_rules(rules, self.options)
        return stringify(map(self.transform, rules))


def transform(css: str, options: Optional[Options] = None, **kwargs) -> str:
    """Rewrite *css* with every resolvable ``var()`` replaced by its value.

    Options may be passed as an :class:`Options` instance, as keyword
    arguments, or both (keywords win)::

        >>> transform(":root { --color: red; } p { color: var(--color); }")
        'p{color:red;}'
    """
    options = options or Options()
    if kwargs:
        options = options.with_overrides(**kwargs)
    return Transformer(options).transform_css(css)
