from dataclasses import dataclass, field, fields
from os import getenv
from typing import Callable, Mapping, Optional

from dotenv import load_dotenv

from cssvars.calc import DEFAULT_PRECISION

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")

ENV_PREFIX = "CSSVARS_"


def parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"expected a boolean, got {raw!r}")


def parse_int(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"expected an integer, got {raw!r}") from None


@dataclass
class Options:
    """Settings for a single transform.

    ``variables`` override custom properties read from the root scope.
    ``preserve_static`` keeps declarations without ``var()``;
    ``preserve_vars`` keeps custom properties and emits the original
    ``var()`` declaration after its resolved copy. ``on_warning`` is called
    with a message for each malformed or unresolvable reference.
    """

    variables: Mapping = field(default_factory=dict)
    preserve_static: bool = True
    preserve_vars: bool = False
    reduce_calc: bool = False
    reduce_calc_precision: int = DEFAULT_PRECISION
    parse_host: bool = False
    on_warning: Optional[Callable[[str], None]] = None

    def __post_init__(self):
        precision = self.reduce_calc_precision
        if isinstance(precision, bool) or not isinstance(precision, int):
            raise ValueError(
                f"reduce_calc_precision must be an int, got {precision!r}"
            )
        if precision < 0:
            raise ValueError(
                f"reduce_calc_precision must be >= 0, got {precision}"
            )
        if self.on_warning is not None and not callable(self.on_warning):
            raise ValueError("on_warning must be callable")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "Options":
        """Build options from ``CSSVARS_*`` environment variables.

        A ``.env`` file is loaded first; variables already set in the
        environment take precedence over it, and *overrides* over both.
        """
        load_dotenv(dotenv_path)
        kwargs = {}
        for f in fields(cls):
            if f.name in ("variables", "on_warning"):
                continue
            raw = getenv(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            parse = parse_int if f.name == "reduce_calc_precision" else parse_bool
            kwargs[f.name] = parse(raw)
        kwargs.update(overrides)
        return cls(**kwargs)

    def with_overrides(self, **overrides) -> "Options":
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise TypeError(f"unknown options: {', '.join(sorted(unknown))}")
        return type(self)(**{**self.__dict__, **overrides})
