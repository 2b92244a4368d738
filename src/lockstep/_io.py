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

"""Shared file I/O helpers for manifests and lock files.

Reads and writes are ``async`` and go through ``aiofiles``. Every
failure is raised as a :class:`~lockstep.errors.LockstepError`; the
caller picks the error code so that manifest failures and lock file
failures stay distinguishable (the lock file synchronizer catches its
own codes, manifests let them propagate).
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

import aiofiles

from lockstep.errors import E, ErrorCode, LockstepError

DEFAULT_INDENT = 2

_INDENT_RE = re.compile(r'^([ \t]+)\S', re.MULTILINE)


async def read_file(path: Path, *, code: ErrorCode = E.MANIFEST_READ_FAILED) -> str:
    """Read a UTF-8 text file asynchronously via aiofiles."""
    try:
        async with aiofiles.open(path, encoding='utf-8') as f:
            return await f.read()
    except (OSError, UnicodeError) as exc:
        raise LockstepError(
            code=code,
            message=f'Failed to read {path}: {exc}',
            hint=f'Check that {path} exists and is valid UTF-8.',
        ) from exc


async def write_file(path: Path, content: str, *, code: ErrorCode = E.MANIFEST_WRITE_FAILED) -> None:
    """Write a UTF-8 text file asynchronously via aiofiles."""
    try:
        async with aiofiles.open(path, mode='w', encoding='utf-8') as f:
            await f.write(content)
    except (OSError, UnicodeError) as exc:
        raise LockstepError(
            code=code,
            message=f'Failed to write {path}: {exc}',
            hint=f'Check file permissions for {path}.',
        ) from exc


def detect_indent(text: str) -> int | str:
    """Return the indentation used by a JSON document.

    Tabs are returned as ``'\\t'``; spaces as a width. Falls back to
    :data:`DEFAULT_INDENT` for flat or empty documents.
    """
    match = _INDENT_RE.search(text)
    if match is None:
        return DEFAULT_INDENT
    indent = match.group(1)
    if '\t' in indent:
        return '\t'
    return len(indent)


def parse_json(text: str, path: Path, *, code: ErrorCode = E.MANIFEST_PARSE_ERROR) -> dict[str, Any]:  # noqa: ANN401 - JSON dict values are inherently untyped
    """Parse JSON text, raising a LockstepError on failure."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise LockstepError(
            code=code,
            message=f'Failed to parse {path}: {exc}',
            hint=f'Check that {path} contains valid JSON.',
        ) from exc
    if not isinstance(data, dict):
        raise LockstepError(
            code=code,
            message=f'{path} is not a JSON object',
            hint=f'Expected a JSON object (dict) at the top level of {path}.',
        )
    return data


def dump_json(data: object, indent: int | str = DEFAULT_INDENT) -> str:
    """Serialize ``data`` the way npm writes its JSON files."""
    return json.dumps(data, indent=indent, ensure_ascii=False) + '\n'


def read_file_sync(path: Path) -> str:
    """Blocking variant of :func:`read_file` for callers that cannot await."""
    try:
        text = path.read_text(encoding='utf-8')
    except (OSError, UnicodeError) as exc:
        raise LockstepError(
            code=E.MANIFEST_READ_FAILED,
            message=f'Failed to read {path}: {exc}',
            hint=f'Check that {path} exists and is valid UTF-8.',
        ) from exc
    return text


__all__ = [
    'DEFAULT_INDENT',
    'detect_indent',
    'dump_json',
    'parse_json',
    'read_file',
    'read_file_sync',
    'write_file',
]
