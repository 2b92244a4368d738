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

"""Keep lock files in step with bumped manifest versions.

Two lock file families are supported::

    npm  (package-lock.json)            pnpm (pnpm-lock.yaml)
    ─────────────────────────           ──────────────────────────────
    {                                   importers:
      "version": "1.2.2",                 packages/b:
      "lockfileVersion": 2,                 specifiers:
      "packages": {                           pkg-a: workspace:^1.2.2
        "": {"version": "1.2.2"},           dependencies:
        "packages/a": {                       pkg-a: link:../a
          "name": "pkg-a",
          "version": "1.2.2"
        }
      },
      "dependencies": {"pkg-a": "^1.2.2"}
    }

Every operation here is best-effort. A missing or unreadable lock file
is an expected state: loads return ``None``, saves return ``None``, and
the reason is logged. Only manifests are strict about I/O.

Usage::

    lockfile = await load_lockfile(root)
    if lockfile is not None:
        update_temp_modern_lockfile_version(manifest, lockfile)
        await save_lockfile(lockfile)
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from lockstep._io import DEFAULT_INDENT, detect_indent, dump_json, parse_json, read_file, write_file
from lockstep.errors import E, LockstepError
from lockstep.logging import get_logger

if TYPE_CHECKING:
    from lockstep.manifest import Manifest

logger = get_logger(__name__)

NPM_LOCKFILE = 'package-lock.json'
PNPM_LOCKFILE = 'pnpm-lock.yaml'

# "^1.2.3" -> "^", "~1.2.3" -> "~", "1.2.3" -> None
_RANGE_PREFIX_RE = re.compile(r'^([\^~])?(.*)$', re.DOTALL)

# "workspace:^1.2.3" -> ("^", "1.2.3"), "workspace:*" -> ("*", "")
_WORKSPACE_SPEC_RE = re.compile(r'^workspace:([\^~*])?(.*)$', re.DOTALL)

# pnpm importer keys holding resolved or protocol-preserving versions.
_PNPM_SKIP_KEYS = frozenset({'specifiers', 'dependencies'})


class PackageManager(str, Enum):
    """Package managers lockstep knows how to probe for."""

    NPM = 'npm'
    PNPM = 'pnpm'
    YARN = 'yarn'


@dataclass
class LockfileInformation:
    """A loaded lock file.

    Attributes:
        doc: The parsed document, mutated in place by the update walks.
        version: ``lockfileVersion`` of the document (1 when absent).
        path: Where the document was read from.
        package_manager: :attr:`PackageManager.NPM` or
            :attr:`PackageManager.PNPM`; selects the walk and the format.
        indent: JSON indentation detected when loading (npm only).
    """

    doc: dict[str, Any]  # noqa: ANN401 - lock files are free-form
    version: int
    path: Path
    package_manager: PackageManager
    indent: int | str = DEFAULT_INDENT


def is_npm_lockfile(lockfile: LockfileInformation) -> bool:
    return lockfile.package_manager == PackageManager.NPM


def is_pnpm_lockfile(lockfile: LockfileInformation) -> bool:
    return lockfile.package_manager == PackageManager.PNPM


def _layout_version(doc: dict[str, Any]) -> int:  # noqa: ANN401
    raw = doc.get('lockfileVersion', 1)
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return 1


async def _load_npm_lockfile(cwd: Path) -> LockfileInformation | None:
    path = cwd / NPM_LOCKFILE
    try:
        text = await read_file(path, code=E.LOCKFILE_READ_FAILED)
        doc = parse_json(text, path, code=E.LOCKFILE_READ_FAILED)
    except LockstepError as exc:
        logger.debug('lockfile_not_loaded', path=str(path), reason=exc.info.message)
        return None
    return LockfileInformation(
        doc=doc,
        version=_layout_version(doc),
        path=path,
        package_manager=PackageManager.NPM,
        indent=detect_indent(text),
    )


async def _load_pnpm_lockfile(cwd: Path) -> LockfileInformation | None:
    path = cwd / PNPM_LOCKFILE
    try:
        text = await read_file(path, code=E.LOCKFILE_READ_FAILED)
        doc = yaml.safe_load(text)
    except (LockstepError, yaml.YAMLError) as exc:
        logger.debug('lockfile_not_loaded', path=str(path), reason=str(exc))
        return None
    if not isinstance(doc, dict):
        logger.debug('lockfile_not_loaded', path=str(path), reason='not a mapping')
        return None
    return LockfileInformation(
        doc=doc,
        version=_layout_version(doc),
        path=path,
        package_manager=PackageManager.PNPM,
    )


async def load_lockfile(
    cwd: Path,
    npm_client: PackageManager | str | None = None,
) -> LockfileInformation | None:
    """Load the workspace lock file, if there is one.

    ``package-lock.json`` is tried first unless another client is
    declared; ``pnpm-lock.yaml`` is tried when the client is pnpm or no
    npm lock file was found.

    Args:
        cwd: Workspace root.
        npm_client: Declared package manager, if any.

    Returns:
        The loaded lock file, or ``None`` if neither family is present.
    """
    lockfile: LockfileInformation | None = None

    if not npm_client or npm_client == PackageManager.NPM:
        lockfile = await _load_npm_lockfile(cwd)

    if npm_client == PackageManager.PNPM or lockfile is None:
        lockfile = await _load_pnpm_lockfile(cwd)

    if lockfile is None:
        logger.debug('lockfile_not_found', root=str(cwd), npm_client=npm_client)
    else:
        logger.debug(
            'lockfile_loaded',
            path=str(lockfile.path),
            package_manager=lockfile.package_manager.value,
            lockfile_version=lockfile.version,
        )
    return lockfile


async def update_classic_lockfile_version(manifest: Manifest) -> Path | None:
    """Mirror the manifest version into the package's own ``package-lock.json``.

    Sets the top-level ``version`` and, for lockfile v2+, the
    ``packages[""].version`` entry.

    Returns:
        The lock file path when it was updated, ``None`` otherwise.
    """
    path = manifest.location / NPM_LOCKFILE
    try:
        text = await read_file(path, code=E.LOCKFILE_READ_FAILED)
        doc = parse_json(text, path, code=E.LOCKFILE_READ_FAILED)
    except LockstepError as exc:
        logger.debug('lockfile_not_loaded', path=str(path), reason=exc.info.message)
        return None

    doc['version'] = manifest.version
    packages = doc.get('packages')
    if isinstance(packages, dict) and isinstance(packages.get(''), dict):
        packages['']['version'] = manifest.version

    try:
        await write_file(path, dump_json(doc, detect_indent(text)), code=E.LOCKFILE_WRITE_FAILED)
    except LockstepError as exc:
        logger.warning('lockfile_save_failed', path=str(path), reason=exc.info.message)
        return None

    logger.debug('lockfile_version_updated', path=str(path), version=manifest.version)
    return path


def update_temp_modern_lockfile_version(manifest: Manifest, lockfile: LockfileInformation) -> None:
    """Propagate ``manifest``'s version into a workspace-root lock file."""
    if lockfile.package_manager == PackageManager.PNPM:
        update_pnpm_lockfile(lockfile, manifest.name, manifest.version or '')
    elif lockfile.package_manager == PackageManager.NPM:
        update_npm_lockfile_version2(lockfile, manifest.name, manifest.version or '')


def _walk_mappings(root: Any, skip: frozenset[str] = frozenset()) -> Iterator[dict[str, Any]]:  # noqa: ANN401
    """Yield every mapping under ``root``, depth first.

    Values stored under a key in ``skip`` are not descended into. A
    yielded mapping may be mutated before the walk resumes.
    """
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, dict):
            yield node
            children = [value for key, value in node.items() if key not in skip and isinstance(value, (dict, list))]
        elif isinstance(node, list):
            children = [value for value in node if isinstance(value, (dict, list))]
        else:
            continue
        stack.extend(reversed(children))


def update_npm_lockfile_version2(lockfile: LockfileInformation, pkg_name: str, new_version: str) -> None:
    """Rewrite every reference to ``pkg_name`` in an npm lock file.

    Two shapes are updated in place::

        "pkg-a": "^1.2.2"                         → "^<new>" (prefix kept)
        {"name": "pkg-a", "version": "1.2.2"}    → version "<new>"
    """
    if not (lockfile.doc and pkg_name and new_version and is_npm_lockfile(lockfile)):
        return

    for part in _walk_mappings(lockfile.doc):
        for key, value in part.items():
            if isinstance(value, str) and key == pkg_name:
                match = _RANGE_PREFIX_RE.match(value)
                prefix = (match.group(1) or '') if match else ''
                part[key] = f'{prefix}{new_version}'
        if part.get('name') == pkg_name and 'version' in part:
            part['version'] = new_version


def update_pnpm_lockfile(lockfile: LockfileInformation, pkg_name: str, new_version: str) -> None:
    """Bump ``workspace:`` specifiers for ``pkg_name`` in pnpm importers.

    ``workspace:^1.0.0`` becomes ``workspace:^<new>``. Specifiers with
    no version to bump (``workspace:*``, ``workspace:^``) are left alone.
    """
    if not (lockfile.doc and pkg_name and new_version and is_pnpm_lockfile(lockfile)):
        return

    importers = lockfile.doc.get('importers')
    if not isinstance(importers, dict):
        return

    for part in _walk_mappings(importers, skip=_PNPM_SKIP_KEYS):
        specifiers = part.get('specifiers')
        if not isinstance(specifiers, dict):
            continue
        spec = specifiers.get(pkg_name)
        if not isinstance(spec, str):
            continue
        match = _WORKSPACE_SPEC_RE.match(spec)
        if match is None:
            continue
        prefix, previous = match.group(1) or '', match.group(2)
        if prefix != '*' and previous:
            specifiers[pkg_name] = f'workspace:{prefix}{new_version}'


async def save_lockfile(lockfile: LockfileInformation) -> Path | None:
    """Write a lock file back in its native format.

    Returns:
        The path written, or ``None`` if the write failed (logged).
    """
    try:
        if lockfile.package_manager == PackageManager.PNPM:
            content = yaml.safe_dump(lockfile.doc, sort_keys=False, default_flow_style=False, allow_unicode=True)
        else:
            content = dump_json(lockfile.doc, lockfile.indent)
        await write_file(lockfile.path, content, code=E.LOCKFILE_WRITE_FAILED)
    except (LockstepError, yaml.YAMLError) as exc:
        logger.warning('lockfile_save_failed', path=str(lockfile.path), reason=str(exc))
        return None

    logger.debug('lockfile_saved', path=str(lockfile.path))
    return lockfile.path


__all__ = [
    'NPM_LOCKFILE',
    'PNPM_LOCKFILE',
    'LockfileInformation',
    'PackageManager',
    'is_npm_lockfile',
    'is_pnpm_lockfile',
    'load_lockfile',
    'save_lockfile',
    'update_classic_lockfile_version',
    'update_npm_lockfile_version2',
    'update_pnpm_lockfile',
    'update_temp_modern_lockfile_version',
]
