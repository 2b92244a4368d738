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

"""Structured error system for lockstep.

Every error has a unique ``LS-NAMED-KEY`` code, a human-readable message,
and an optional hint with a suggested fix.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ErrorCode           │ A unique named ID like "LS-SPEC-INVALID-NAME" │
    │                     │ for each error. Readable at a glance.         │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ErrorInfo           │ A bundle of code + message + hint. Like an    │
    │                     │ error card with a fix suggestion stapled on.  │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ LockstepError       │ An exception you can raise. Carries the       │
    │                     │ error card so renderers can display it.       │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ ERRORS catalog      │ Pre-built error cards for common mistakes.    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ explain()           │ Looks up an error code and prints details.    │
    └─────────────────────┴────────────────────────────────────────────────┘

Code categories::

    LS-CONFIG-*       Configuration errors (lockstep.toml, discovery globs)
    LS-SPEC-*         Package name / dependency specifier resolution errors
    LS-MANIFEST-*     package.json read/parse/write errors
    LS-LOCKFILE-*     Lock file errors (logged, never raised to callers)

Lock file problems are lenient: the synchronizer logs them
and returns ``None``. Manifest problems always raise.

Usage::

    from lockstep.errors import LockstepError, E

    raise LockstepError(
        code=E.SPEC_INVALID_NAME,
        message='Invalid package name ".hidden"',
        hint='Package names may not start with a period.',
    )
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from typing import TextIO

from rich.console import Console
from rich.markup import escape as rich_escape


class ErrorCode(str, Enum):
    """Enumeration of all lockstep diagnostic codes.

    Each code maps to a unique ``LS-NAMED-KEY`` identifier. Use these
    constants instead of raw strings when raising :class:`LockstepError`.
    """

    # Configuration
    CONFIG_INVALID_KEY = 'LS-CONFIG-INVALID-KEY'
    CONFIG_INVALID_VALUE = 'LS-CONFIG-INVALID-VALUE'
    CONFIG_PARSE_ERROR = 'LS-CONFIG-PARSE-ERROR'
    CONFIG_INVALID_PACKAGE_GLOB = 'LS-CONFIG-INVALID-PACKAGE-GLOB'

    # Specifier resolution
    SPEC_INVALID_NAME = 'LS-SPEC-INVALID-NAME'
    SPEC_INVALID = 'LS-SPEC-INVALID'

    # Manifests
    MANIFEST_READ_FAILED = 'LS-MANIFEST-READ-FAILED'
    MANIFEST_PARSE_ERROR = 'LS-MANIFEST-PARSE-ERROR'
    MANIFEST_WRITE_FAILED = 'LS-MANIFEST-WRITE-FAILED'

    # Lock files
    LOCKFILE_READ_FAILED = 'LS-LOCKFILE-READ-FAILED'
    LOCKFILE_WRITE_FAILED = 'LS-LOCKFILE-WRITE-FAILED'


# Convenience alias for shorter imports.
E = ErrorCode


@dataclass(frozen=True)
class ErrorInfo:
    """Metadata for a single error code.

    Attributes:
        code: The ``LS-NAMED-KEY`` error code.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    code: ErrorCode
    message: str
    hint: str = ''


class LockstepError(Exception):
    """Base exception for all lockstep errors.

    Carries structured diagnostic information (code, message, hint) that
    can be rendered as a rich terminal message.

    Args:
        code: The error code from :class:`ErrorCode`.
        message: Human-readable description of what went wrong.
        hint: Optional suggestion for how to fix the error.
    """

    def __init__(self, code: ErrorCode, message: str, hint: str = '') -> None:
        """Initialize with an error code, message, and optional hint."""
        self.info = ErrorInfo(code=code, message=message, hint=hint)
        super().__init__(f'[{code.value}] {message}')

    @property
    def code(self) -> ErrorCode:
        """The error code."""
        return self.info.code

    @property
    def hint(self) -> str:
        """Suggestion for fixing this error, or empty string."""
        return self.info.hint


ERRORS: dict[ErrorCode, ErrorInfo] = {
    E.CONFIG_INVALID_PACKAGE_GLOB: ErrorInfo(
        code=E.CONFIG_INVALID_PACKAGE_GLOB,
        message='An explicit node_modules package path does not allow globstars (**).',
        hint='Globstar patterns already skip node_modules; drop the explicit node_modules entry.',
    ),
    E.SPEC_INVALID_NAME: ErrorInfo(
        code=E.SPEC_INVALID_NAME,
        message='A package name does not follow npm naming rules.',
        hint='Names must be lowercase, URL-safe, and may not start with "." or "_".',
    ),
    E.MANIFEST_PARSE_ERROR: ErrorInfo(
        code=E.MANIFEST_PARSE_ERROR,
        message='A package.json file is not valid JSON.',
        hint='Fix the syntax error reported in the message and retry.',
    ),
}


def explain(code: str) -> str | None:
    """Return a detailed explanation for an error code.

    Args:
        code: The error code string, e.g. ``"LS-SPEC-INVALID-NAME"``.

    Returns:
        A formatted explanation string, or ``None`` if the code is unknown.
    """
    try:
        error_code = ErrorCode(code)
    except ValueError:
        return None

    info = ERRORS.get(error_code)
    if info is None:
        return f'{code}: No detailed explanation available.'

    lines = [f'{code}: {info.message}']
    if info.hint:
        lines.append(f'  Hint: {info.hint}')
    return '\n'.join(lines)


def render_error(exc: LockstepError, *, file: TextIO | None = None) -> None:
    """Render an error in compiler style, colored when writing to a TTY.

    Output format::

        error[LS-SPEC-INVALID-NAME]: Invalid package name ".hidden".
          |
          = hint: Package names may not start with a period.

    Args:
        exc: The error to render.
        file: Output stream (defaults to ``sys.stderr``).
    """
    out = file or sys.stderr

    if out.isatty():
        console = Console(file=out, highlight=False)
        msg = rich_escape(exc.info.message)
        console.print(
            f'[bold red]error[/bold red][bold red]\\[{exc.code.value}][/bold red][bold]: {msg}[/bold]',
        )
        if exc.hint:
            hint = rich_escape(exc.hint)
            console.print('  [dim]|[/dim]')
            console.print(f'  [dim]=[/dim] [cyan]hint[/cyan]: {hint}')
        console.print()
    else:
        print(f'error[{exc.code.value}]: {exc.info.message}', file=out)  # noqa: T201 - CLI output
        if exc.hint:
            print('  |', file=out)  # noqa: T201 - CLI output
            print(f'  = hint: {exc.hint}', file=out)  # noqa: T201 - CLI output
        print(file=out)  # noqa: T201 - CLI output


__all__ = [
    'E',
    'ERRORS',
    'ErrorCode',
    'ErrorInfo',
    'LockstepError',
    'explain',
    'render_error',
]
