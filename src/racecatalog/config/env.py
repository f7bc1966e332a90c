"""Environment variable access for the config factories."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Final

from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


def require_env_vars(names: Sequence[str]) -> dict[str, str]:
    """Return the named variables, raising once for every unset or blank one."""

    values = {name: os.getenv(name, "") for name in names}
    missing = sorted(name for name, value in values.items() if not value.strip())
    if missing:
        raise MissingConfigurationError(missing)
    return values


def env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
