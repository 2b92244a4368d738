# Copyright 2026 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""Configuration loading for lockstep.

Reads an optional ``lockstep.toml`` at the workspace root. All keys are
top-level and optional.

Validation Pipeline::

    lockstep.toml
    ┌──────────────────┐
    │ save_prefx = "^" │  ← typo!
    └────────┬─────────┘
             │
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 1. Unknown key   │────→│ LS-CONFIG-INVALID-KEY:       │
    │    detection     │     │ hint: "Did you mean          │
    └────────┬─────────┘     │       'save_prefix'?"        │
             │               └──────────────────────────────┘
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 2. Type check    │────→│ LS-CONFIG-INVALID-VALUE:     │
    │    each value    │     │ Expected str, got int        │
    └────────┬─────────┘     └──────────────────────────────┘
             │
             ▼
    ┌──────────────────┐     ┌──────────────────────────────┐
    │ 3. Value check   │────→│ LS-CONFIG-INVALID-VALUE:     │
    │    (enums, etc.) │     │ save_prefix must be one of   │
    └────────┬─────────┘     │ "", "^", "~"                 │
             │               └──────────────────────────────┘
             ▼
    ┌──────────────────┐
    │ SyncConfig()     │  ← frozen dataclass, ready to use
    └──────────────────┘

Supported keys in ``lockstep.toml``::

    packages               = ["packages/*"]   # package globs
    save_prefix            = "^"               # "", "^" or "~"
    workspace_strict_match = true              # translate workspace:* etc. on publish
    npm_client             = "npm"             # "npm", "pnpm" or "yarn"

When ``packages`` is not set, the ``workspaces`` field of the root
``package.json`` is used, then ``["packages/*"]``.

Usage::

    from lockstep.config import load_config

    cfg = load_config(Path('/path/to/workspace'))
    find = make_file_finder(root, cfg.packages)
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
import tomlkit.exceptions

from lockstep.errors import E, LockstepError
from lockstep.logging import get_logger
from lockstep.manifest import MANIFEST_FILENAME, Manifest

logger = get_logger(__name__)

# The config file name at the workspace root.
CONFIG_FILENAME = 'lockstep.toml'

DEFAULT_PACKAGES: tuple[str, ...] = ('packages/*',)

VALID_KEYS: frozenset[str] = frozenset({
    'npm_client',
    'packages',
    'save_prefix',
    'workspace_strict_match',
})

ALLOWED_SAVE_PREFIXES: frozenset[str] = frozenset({'', '^', '~'})
ALLOWED_NPM_CLIENTS: frozenset[str] = frozenset({'npm', 'pnpm', 'yarn'})

_TYPE_MAP: dict[str, type | tuple[type, ...]] = {
    'npm_client': str,
    'packages': list,
    'save_prefix': str,
    'workspace_strict_match': bool,
}


@dataclass(frozen=True)
class SyncConfig:
    """Validated configuration for version synchronization.

    Attributes:
        packages: Package globs relative to the workspace root.
        save_prefix: Prefix for rewritten registry ranges.
        workspace_strict_match: On publish, turn ``workspace:*`` into
            the exact version and ``workspace:^``/``workspace:~`` into
            the matching range.
        npm_client: Declared package manager; ``""`` probes npm then pnpm.
        config_path: The ``lockstep.toml`` that was loaded, if any.
    """

    packages: list[str] = field(default_factory=lambda: list(DEFAULT_PACKAGES))
    save_prefix: str = '^'
    workspace_strict_match: bool = True
    npm_client: str = ''
    config_path: Path | None = None


def _suggest_key(unknown: str) -> str | None:
    """Return the closest valid key for a typo, or None."""
    matches = difflib.get_close_matches(unknown, VALID_KEYS, n=1, cutoff=0.6)
    return matches[0] if matches else None


def _validate_value_type(key: str, value: Any) -> None:  # noqa: ANN401 - dynamic config values
    """Raise if a config value has the wrong type."""
    expected = _TYPE_MAP[key]
    if not isinstance(value, expected):
        type_name = expected.__name__ if isinstance(expected, type) else str(expected)
        raise LockstepError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"'{key}' must be {type_name}, got {type(value).__name__}",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )


def _validate_choice(key: str, value: str, allowed: frozenset[str]) -> None:
    if value not in allowed:
        raise LockstepError(
            code=E.CONFIG_INVALID_VALUE,
            message=f"{key} must be one of {sorted(allowed)}, got '{value}'",
            hint=f'Check the value of {key} in {CONFIG_FILENAME}.',
        )


def _validate_packages(items: list[object]) -> list[str]:
    for item in items:
        if not isinstance(item, str) or not item:
            raise LockstepError(
                code=E.CONFIG_INVALID_VALUE,
                message=f"'packages' must contain non-empty strings, got {item!r}",
                hint='Use glob strings such as "packages/*".',
            )
    return [str(item) for item in items]


def _workspace_globs(workspace_root: Path) -> list[str] | None:
    """Return the root manifest's ``workspaces`` globs, if declared."""
    if not (workspace_root / MANIFEST_FILENAME).is_file():
        return None
    workspaces = Manifest.lazy(workspace_root).workspaces
    if isinstance(workspaces, dict):
        workspaces = workspaces.get('packages')
    if isinstance(workspaces, list) and workspaces:
        return _validate_packages(workspaces)
    return None


def load_config(workspace_root: Path) -> SyncConfig:
    """Load and validate configuration from ``lockstep.toml``.

    Args:
        workspace_root: Directory containing ``lockstep.toml``.

    Returns:
        A validated :class:`SyncConfig`.

    Raises:
        LockstepError: If the file contains invalid config.
    """
    config_path = workspace_root / CONFIG_FILENAME
    raw: dict[str, Any] = {}  # noqa: ANN401

    if config_path.is_file():
        try:
            text = config_path.read_text(encoding='utf-8')
        except OSError as exc:
            raise LockstepError(
                code=E.CONFIG_PARSE_ERROR,
                message=f'Failed to read {config_path}: {exc}',
            ) from exc
        try:
            raw = tomlkit.parse(text).unwrap()
        except tomlkit.exceptions.TOMLKitError as exc:
            raise LockstepError(
                code=E.CONFIG_PARSE_ERROR,
                message=f'Failed to parse {config_path}: {exc}',
            ) from exc
    else:
        logger.debug('no_lockstep_config', path=str(config_path))
        config_path = None

    for key in raw:
        if key not in VALID_KEYS:
            suggestion = _suggest_key(key)
            raise LockstepError(
                code=E.CONFIG_INVALID_KEY,
                message=f"Unknown key '{key}' in {CONFIG_FILENAME}",
                hint=f"Did you mean '{suggestion}'?" if suggestion else f'Valid keys: {sorted(VALID_KEYS)}',
            )

    for key, value in raw.items():
        _validate_value_type(key, value)

    if 'save_prefix' in raw:
        _validate_choice('save_prefix', raw['save_prefix'], ALLOWED_SAVE_PREFIXES)
    if 'npm_client' in raw:
        _validate_choice('npm_client', raw['npm_client'], ALLOWED_NPM_CLIENTS)

    if 'packages' in raw:
        raw['packages'] = _validate_packages(raw['packages'])
    else:
        globs = _workspace_globs(workspace_root)
        if globs is not None:
            raw['packages'] = globs

    cfg = SyncConfig(**raw, config_path=config_path)
    logger.debug('config_loaded', path=str(config_path) if config_path else None, packages=cfg.packages)
    return cfg


__all__ = [
    'ALLOWED_NPM_CLIENTS',
    'ALLOWED_SAVE_PREFIXES',
    'CONFIG_FILENAME',
    'DEFAULT_PACKAGES',
    'SyncConfig',
    'VALID_KEYS',
    'load_config',
]
