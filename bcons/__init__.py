# SPDX-License-Identifier: MIT
"""
Bcons: generates Ninja build files for Apple-style products.

Bcons reads flat target-description files and emits a Ninja file that
compiles, links, signs, packages and tests executables and bundles.
"""

from __future__ import annotations

import json
import os

__version__ = "0.3.0"

# Environment variable holding a JSON object of build variables.
VARS_ENV = "BCONS_VARS"

# Internal storage for variables passed through the environment
_env_vars: dict[str, str] | None = None


def env_vars() -> dict[str, str]:
    """Variables passed as a JSON object in BCONS_VARS.

    An unset or malformed BCONS_VARS yields no variables.
    """
    global _env_vars

    if _env_vars is None:
        raw = os.environ.get(VARS_ENV)
        parsed: object = {}
        if raw:
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = {}
        if isinstance(parsed, dict):
            _env_vars = {str(k): str(v) for k, v in parsed.items()}
        else:
            _env_vars = {}
    return dict(_env_vars)


def _reset_env_vars() -> None:
    """Forget cached BCONS_VARS (used by tests)."""
    global _env_vars
    _env_vars = None


def get_var(name: str, default: str | None = None) -> str | None:
    """Get a build variable from the environment.

    Precedence (highest to lowest):
        1. BCONS_VARS='{"CC": "clang-18"}' bcons ...
        2. Environment variable: CC=clang-18 bcons ...

    Args:
        name: Variable name.
        default: Default value if not set.

    Returns:
        The variable value, or default if not set.
    """
    variables = env_vars()
    if name in variables:
        return variables[name]
    return os.environ.get(name, default)


__all__ = [
    "__version__",
    "env_vars",
    "get_var",
]
