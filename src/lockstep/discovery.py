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

"""Locate package files from workspace globs.

:func:`make_file_finder` and :func:`make_sync_file_finder` turn a
workspace root and its package globs (``["packages/*", "tools/*"]``)
into a finder::

    find = make_file_finder(root, ['packages/*', 'tools/*'])
    paths = await find('package.json')

    root/packages/a/package.json   ┐ sorted within
    root/packages/b/package.json   ┘ "packages/*"
    root/tools/x/package.json      ┐ sorted within
    root/tools/y/package.json      ┘ "tools/*"

Results for each glob are sorted on their own and then concatenated in
the order the globs were given, so output does not depend on filesystem
iteration order. The async finder globs at most
:data:`FINDER_CONCURRENCY` patterns at a time.

Globs containing ``**`` never descend into ``node_modules``; combining
``**`` with an explicit ``node_modules`` glob is rejected up front.
"""

from __future__ import annotations

import asyncio
import dataclasses
import fnmatch
import inspect
import os
import posixpath
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from lockstep.errors import E, LockstepError
from lockstep.logging import get_logger
from lockstep.manifest import MANIFEST_FILENAME, Manifest

logger = get_logger(__name__)

FINDER_CONCURRENCY = 4

NODE_MODULES_IGNORE = '**/node_modules/**'

FileMapper = Callable[[list[Path]], Any]


@dataclass(frozen=True)
class GlobOptions:
    """Options for a single glob pass.

    Attributes:
        cwd: Directory globs are relative to.
        ignore: Relative posix globs whose matches are dropped.
        follow_symlinks: Keep matches whose path goes through a symlink.
        dot: Match entries whose name starts with ``"."``.
    """

    cwd: Path
    ignore: tuple[str, ...] = ()
    follow_symlinks: bool = False
    dot: bool = False


def _glob_options(root_path: Path, package_configs: Sequence[str]) -> dict[str, Any]:  # noqa: ANN401
    """Validate the globs and return the options the finder enforces."""
    options: dict[str, Any] = {'cwd': root_path, 'follow_symlinks': False}  # noqa: ANN401

    if any('**' in cfg for cfg in package_configs):
        if any('node_modules' in cfg for cfg in package_configs):
            raise LockstepError(
                code=E.CONFIG_INVALID_PACKAGE_GLOB,
                message='An explicit node_modules package path does not allow globstars (**)',
                hint='Globstar patterns already skip node_modules; drop the explicit node_modules entry.',
            )
        options['ignore'] = (NODE_MODULES_IGNORE,)

    return options


def _merge_options(enforced: dict[str, Any], custom: dict[str, Any] | None) -> GlobOptions:  # noqa: ANN401
    """Merge caller options under the enforced ones; enforced keys win."""
    merged = {**(custom or {}), **enforced}
    unknown = set(merged) - {f.name for f in dataclasses.fields(GlobOptions)}
    if unknown:
        raise LockstepError(
            code=E.CONFIG_INVALID_VALUE,
            message=f'Unknown glob option(s): {sorted(unknown)}',
            hint='Supported options are cwd, ignore, follow_symlinks and dot.',
        )
    merged['cwd'] = Path(merged['cwd'])
    merged['ignore'] = tuple(merged.get('ignore', ()))
    return GlobOptions(**merged)


def _is_ignored(relative: str, patterns: tuple[str, ...]) -> bool:
    for pattern in patterns:
        candidates = [pattern]
        if pattern.startswith('**/'):
            candidates.append(pattern[3:])
        if any(fnmatch.fnmatchcase(relative, candidate) for candidate in candidates):
            return True
    return False


def _through_symlink(path: Path, cwd: Path) -> bool:
    """True if a directory between ``cwd`` and ``path`` is a symlink."""
    for parent in path.parents:
        if parent == cwd or not parent.is_relative_to(cwd):
            break
        if parent.is_symlink():
            return True
    return False


def glob_files(pattern: str, options: GlobOptions) -> list[Path]:
    """Return the sorted, normalized absolute files matching ``pattern``."""
    if pattern.startswith('./'):
        pattern = pattern[2:]
    cwd = options.cwd.resolve()

    results: list[Path] = []
    for candidate in cwd.glob(pattern):
        if not candidate.is_file():
            continue
        relative = Path(os.path.relpath(candidate, cwd))
        if not options.dot and any(part.startswith('.') and part not in ('.', '..') for part in relative.parts):
            continue
        if options.ignore and _is_ignored(relative.as_posix(), options.ignore):
            continue
        if not options.follow_symlinks and _through_symlink(candidate, cwd):
            continue
        results.append(Path(os.path.normpath(candidate)))

    return sorted(results, key=str)


def _flatten(results: list[Any]) -> list[Any]:  # noqa: ANN401 - mapper output is caller-defined
    flat: list[Any] = []  # noqa: ANN401
    for result in results:
        if isinstance(result, list):
            flat.extend(result)
        else:
            flat.append(result)
    return flat


def make_file_finder(
    root_path: str | os.PathLike[str],
    package_configs: Sequence[str],
) -> Callable[..., Awaitable[list[Any]]]:
    """Build an async finder for files under the package globs.

    Raises:
        LockstepError: ``LS-CONFIG-INVALID-PACKAGE-GLOB`` when ``**`` and
            ``node_modules`` are combined.
    """
    enforced = _glob_options(Path(root_path), package_configs)
    configs = list(package_configs)

    async def find(
        file_name: str,
        file_mapper: FileMapper | None = None,
        custom_glob_opts: dict[str, Any] | None = None,  # noqa: ANN401
    ) -> list[Any]:  # noqa: ANN401
        options = _merge_options(enforced, custom_glob_opts)
        semaphore = asyncio.Semaphore(FINDER_CONCURRENCY)

        async def _one(glob_path: str) -> Any:  # noqa: ANN401
            async with semaphore:
                paths = await asyncio.to_thread(glob_files, posixpath.join(glob_path, file_name), options)
            if file_mapper is None:
                return paths
            mapped = file_mapper(paths)
            if inspect.isawaitable(mapped):
                mapped = await mapped
            return mapped

        results = await asyncio.gather(*[_one(cfg) for cfg in configs])
        found = _flatten(list(results))
        logger.debug('files_found', file_name=file_name, patterns=configs, count=len(found))
        return found

    return find


def make_sync_file_finder(
    root_path: str | os.PathLike[str],
    package_configs: Sequence[str],
) -> Callable[..., list[Any]]:
    """Blocking counterpart of :func:`make_file_finder`."""
    enforced = _glob_options(Path(root_path), package_configs)
    configs = list(package_configs)

    def find(
        file_name: str,
        file_mapper: FileMapper | None = None,
        custom_glob_opts: dict[str, Any] | None = None,  # noqa: ANN401
    ) -> list[Any]:  # noqa: ANN401
        options = _merge_options(enforced, custom_glob_opts)
        results: list[Any] = []  # noqa: ANN401
        for cfg in configs:
            paths = glob_files(posixpath.join(cfg, file_name), options)
            results.append(file_mapper(paths) if file_mapper is not None else paths)
        found = _flatten(results)
        logger.debug('files_found', file_name=file_name, patterns=configs, count=len(found))
        return found

    return find


def _manifest_mapper(root_path: Path) -> FileMapper:
    def _map(paths: list[Path]) -> list[Manifest]:
        return [Manifest.lazy(path, root_path=root_path) for path in paths]

    return _map


async def load_manifests(
    root_path: str | os.PathLike[str],
    package_configs: Sequence[str],
) -> list[Manifest]:
    """Load every ``package.json`` matched by the package globs."""
    root = Path(root_path).resolve()
    find = make_file_finder(root, package_configs)
    manifests = await find(MANIFEST_FILENAME, _manifest_mapper(root))
    logger.info('discovered_packages', count=len(manifests))
    return manifests


def load_manifests_sync(
    root_path: str | os.PathLike[str],
    package_configs: Sequence[str],
) -> list[Manifest]:
    """Blocking counterpart of :func:`load_manifests`."""
    root = Path(root_path).resolve()
    find = make_sync_file_finder(root, package_configs)
    manifests = find(MANIFEST_FILENAME, _manifest_mapper(root))
    logger.info('discovered_packages', count=len(manifests))
    return manifests


__all__ = [
    'FINDER_CONCURRENCY',
    'GlobOptions',
    'glob_files',
    'load_manifests',
    'load_manifests_sync',
    'make_file_finder',
    'make_sync_file_finder',
]
