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

"""In-memory model of a single ``package.json``.

A :class:`Manifest` wraps the raw JSON document of one package and
exposes typed accessors for the fields lockstep cares about. Everything
else is reachable through :meth:`Manifest.get` / :meth:`Manifest.set`
and round-trips untouched through :meth:`Manifest.serialize`.

Key Concepts (ELI5)::

    ┌─────────────────────┬────────────────────────────────────────────────┐
    │ Concept             │ ELI5 Explanation                               │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ name                │ Fixed at construction. Reloading the file     │
    │                     │ from disk never renames the package.          │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ Live collections    │ ``dependencies`` & co. return the dict inside │
    │                     │ the document; edits show up on serialize().   │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ to_json()           │ A copy safe to mutate. Lists and nested dicts │
    │                     │ are copied one level deep.                    │
    ├─────────────────────┼────────────────────────────────────────────────┤
    │ refresh/serialize   │ Async disk I/O. Failures raise; manifests are │
    │                     │ never written or read on a best-effort basis. │
    └─────────────────────┴────────────────────────────────────────────────┘
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from lockstep._io import DEFAULT_INDENT, detect_indent, dump_json, parse_json, read_file, read_file_sync, write_file
from lockstep.logging import get_logger
from lockstep.specifier import resolve_specifier

if TYPE_CHECKING:
    from lockstep.rewrite import CallSite
    from lockstep.specifier import ResolvedDependencySpecifier

logger = get_logger(__name__)

MANIFEST_FILENAME = 'package.json'

DEPENDENCY_COLLECTIONS = ('dependencies', 'devDependencies', 'optionalDependencies', 'peerDependencies')


def _shallow_copy(doc: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401 - JSON dict values are inherently untyped
    copy: dict[str, Any] = {}  # noqa: ANN401
    for key, value in doc.items():
        if isinstance(value, list):
            copy[key] = list(value)
        elif isinstance(value, dict):
            copy[key] = dict(value)
        else:
            copy[key] = value
    return copy


def _normalized(doc: dict[str, Any]) -> dict[str, Any]:  # noqa: ANN401
    """Return ``doc`` with the dependency collections sorted by name."""
    out = dict(doc)
    for key in DEPENDENCY_COLLECTIONS:
        section = out.get(key)
        if isinstance(section, dict):
            out[key] = dict(sorted(section.items()))
    return out


class Manifest:
    """One package's manifest.

    Args:
        pkg: The raw ``package.json`` document. Kept by reference.
        location: Absolute path of the package directory.
        root_path: Absolute path of the workspace root; defaults to
            ``location``.

    Raises:
        LockstepError: If the manifest carries an invalid package name.
    """

    def __init__(
        self,
        pkg: dict[str, Any],  # noqa: ANN401
        location: str | os.PathLike[str],
        root_path: str | os.PathLike[str] | None = None,
    ) -> None:
        """Resolve the package against the workspace root."""
        location = Path(location)
        root_path = Path(root_path) if root_path is not None else location
        pkg = pkg if pkg is not None else {}

        relative = os.path.relpath(location, root_path).replace(os.sep, '/')
        self._resolved = resolve_specifier(pkg.get('name') or None, f'file:{relative}', root_path)

        self._name: str = pkg.get('name') or ''
        self._pkg = pkg
        self._location = location
        self._root_path = root_path
        self._scripts = dict(pkg.get('scripts') or {})
        self._contents: Path | None = None
        self._indent: int | str = DEFAULT_INDENT

    @classmethod
    def lazy(
        cls,
        ref: str | os.PathLike[str] | Manifest | dict[str, Any],  # noqa: ANN401
        directory: str | os.PathLike[str] = '.',
        *,
        root_path: str | os.PathLike[str] | None = None,
    ) -> Manifest:
        """Build a manifest from a path, a raw document, or pass one through.

        Args:
            ref: A package directory, a ``package.json`` path, an existing
                :class:`Manifest`, or a raw document.
            directory: Package location when ``ref`` is a raw document.
            root_path: Workspace root for newly built instances.
        """
        if isinstance(ref, Manifest):
            return ref
        if isinstance(ref, dict):
            return cls(ref, directory, root_path)

        path = Path(ref)
        location = (path.parent if path.name == MANIFEST_FILENAME else path).resolve()
        manifest_path = location / MANIFEST_FILENAME
        text = read_file_sync(manifest_path)
        manifest = cls(parse_json(text, manifest_path), location, root_path)
        manifest._indent = detect_indent(text)
        return manifest

    def __repr__(self) -> str:
        """Show identity only; the raw document stays out of reprs."""
        return f'Manifest(name={self._name!r}, version={self.version!r}, location={str(self._location)!r})'

    # Read-only properties.

    @property
    def name(self) -> str:
        """Package name, fixed at construction."""
        return self._name

    @property
    def location(self) -> Path:
        """Absolute package directory."""
        return self._location

    @property
    def root_path(self) -> Path:
        """Absolute workspace root."""
        return self._root_path

    @property
    def resolved(self) -> ResolvedDependencySpecifier:
        """Directory resolution of this package relative to the root."""
        return self._resolved

    @property
    def private(self) -> bool:
        """Whether ``"private": true`` is set."""
        return bool(self._pkg.get('private'))

    @property
    def scripts(self) -> dict[str, str]:
        """Independent copy of the ``scripts`` mapping."""
        return self._scripts

    @property
    def bin(self) -> dict[str, str]:
        """Executables, with the single-string form keyed by the unscoped name."""
        value = self._pkg.get('bin')
        if isinstance(value, str):
            name = self._resolved.name
            scope = self._resolved.scope
            return {name[len(scope) + 1:] if scope else name: value}
        return dict(value or {})

    @property
    def manifest_location(self) -> Path:
        return self._location / MANIFEST_FILENAME

    @property
    def bin_location(self) -> Path:
        return self._location / 'node_modules' / '.bin'

    @property
    def node_modules_location(self) -> Path:
        return self._location / 'node_modules'

    # Mutable fields.

    @property
    def version(self) -> str | None:
        """Current ``version`` field."""
        return self._pkg.get('version')

    @version.setter
    def version(self, version: str) -> None:
        self._pkg['version'] = version

    @property
    def workspaces(self) -> list[str] | dict[str, list[str]] | None:
        """The ``workspaces`` globs, as a list or ``{"packages": [...]}``."""
        return self._pkg.get('workspaces')

    @workspaces.setter
    def workspaces(self, workspaces: list[str] | dict[str, list[str]]) -> None:
        self._pkg['workspaces'] = workspaces

    @property
    def contents(self) -> Path:
        """Directory that gets packed on publish.

        An explicit override wins, then ``publishConfig.directory``,
        then the package location.
        """
        if self._contents is not None:
            return self._contents
        publish_config = self._pkg.get('publishConfig')
        if isinstance(publish_config, dict) and publish_config.get('directory'):
            return self._location / publish_config['directory']
        return self._location

    @contents.setter
    def contents(self, sub_directory: str) -> None:
        self._contents = self._location / sub_directory

    # Live dependency collections.

    @property
    def dependencies(self) -> dict[str, str] | None:
        return self._pkg.get('dependencies')

    @property
    def dev_dependencies(self) -> dict[str, str] | None:
        return self._pkg.get('devDependencies')

    @property
    def optional_dependencies(self) -> dict[str, str] | None:
        return self._pkg.get('optionalDependencies')

    @property
    def peer_dependencies(self) -> dict[str, str] | None:
        return self._pkg.get('peerDependencies')

    # Map-like access.

    def get(self, key: str) -> Any:  # noqa: ANN401 - arbitrary manifest value
        """Return the value stored under ``key``, or ``None``."""
        return self._pkg.get(key)

    def set(self, key: str, value: Any) -> Manifest:  # noqa: ANN401 - arbitrary manifest value
        """Store ``value`` under ``key``; returns ``self`` for chaining."""
        self._pkg[key] = value
        return self

    def to_json(self) -> dict[str, Any]:  # noqa: ANN401
        """Return a copy of the document that is safe to mutate."""
        return _shallow_copy(self._pkg)

    # Disk I/O.

    async def refresh(self) -> Manifest:
        """Reload the document from disk. The name is not reloaded."""
        path = self.manifest_location
        text = await read_file(path)
        self._pkg = parse_json(text, path)
        self._indent = detect_indent(text)
        logger.debug('manifest_refreshed', package=self._name, path=str(path))
        return self

    async def serialize(self) -> Manifest:
        """Write the document to disk."""
        path = self.manifest_location
        await write_file(path, dump_json(_normalized(self._pkg), self._indent))
        logger.debug('manifest_serialized', package=self._name, path=str(path))
        return self

    def update_local_dependency(
        self,
        resolved: ResolvedDependencySpecifier,
        new_version: str,
        save_prefix: str,
        strict_workspace_match: bool = True,
        called_by: CallSite | str | None = None,
    ) -> None:
        """Point the dependency described by ``resolved`` at ``new_version``.

        See :func:`lockstep.rewrite.update_local_dependency`.
        """
        from lockstep.rewrite import update_local_dependency  # noqa: PLC0415 - rewrite imports this module

        update_local_dependency(
            self,
            resolved,
            new_version,
            save_prefix,
            strict_workspace_match=strict_workspace_match,
            called_by=called_by,
        )


__all__ = [
    'DEPENDENCY_COLLECTIONS',
    'MANIFEST_FILENAME',
    'Manifest',
]
