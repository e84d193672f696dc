from typing import Mapping, Optional

from cssvars.stylesheet import StyleRule, parse_stylesheet

ROOT_SELECTOR = ":root"
HOST_SELECTOR = ":host"


def stringify_value(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def merge_variables(*mappings: Optional[Mapping]) -> dict[str, str]:
    """Merge variable maps left to right; later maps win on name clashes."""
    merged = {}
    for mapping in mappings:
        for name, value in (mapping or {}).items():
            if value is not None:
                merged[name] = stringify_value(value)
    return merged


def is_root_scope(rule, parse_host: bool = False) -> bool:
    if not isinstance(rule, StyleRule) or len(rule.selectors) != 1:
        return False
    selector = rule.selectors[0]
    return selector == ROOT_SELECTOR or (parse_host and selector == HOST_SELECTOR)


def collect_variables(rules, parse_host: bool = False) -> dict[str, str]:
    variables = {}
    for rule in rules:
        if not is_root_scope(rule, parse_host):
            continue
        for declaration in rule.declarations:
            if declaration.is_custom_property:
                variables[declaration.name] = declaration.value
    return variables


def extract_variables(
    css: str, parse_host: bool = False, store: Optional[Mapping] = None
) -> dict[str, str]:
    """Return the custom properties declared in the root scope of *css*.

    Declarations are read in document order, so a later ``--name`` replaces
    an earlier one wherever its rule sits. Values are kept unresolved:
    ``--a: var(--b)`` is stored as ``var(--b)``. When *store* is given the
    extracted entries are layered on top of a copy of it.
    """
    return merge_variables(store, collect_variables(parse_stylesheet(css), parse_host))
