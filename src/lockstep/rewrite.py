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

"""Rewrite a local dependency specifier after a version change.

Given one dependency edge (a :class:`ResolvedDependencySpecifier`) and
the new version of the package it points at, compute the replacement
string in the protocol the original specifier used and store it in the
consuming manifest.

Decision table::

    spec form            call site   strict   target        result
    ───────────────────  ──────────  ───────  ────────────  ─────────────────
    ^1.0.0 / file:../a   any         any      -             {prefix}{version}
    workspace:*          publish     on       -             {version}
    workspace:^          publish     on       -             ^{version}
    workspace:~          publish     on       -             ~{version}
    workspace:^1.0.0     publish     on       -             {prefix}{version}
    workspace:<any>      publish     off      -             {prefix}{version}
    workspace:* / ^ / ~  other       any      -             unchanged literal
    workspace:^1.0.0     other       any      -             workspace:{prefix}{version}
    git#v1.0.0           any         any      -             git#v{version}
    git#semver:^1.0.0    any         any      -             git#semver:{prefix}{version}

Collections are searched in the order ``dependencies``,
``optionalDependencies``, ``devDependencies``; the first one holding the
name receives the write. ``peerDependencies`` are never rewritten.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING

from lockstep.logging import get_logger
from lockstep.specifier import WORKSPACE_PROTOCOL, ResolvedDependencySpecifier, SpecType

if TYPE_CHECKING:
    from lockstep.manifest import Manifest

logger = get_logger(__name__)

# Search order for the collection that owns a dependency.
COLLECTION_ORDER = ('dependencies', 'optionalDependencies', 'devDependencies')

# Workspace targets that carry no version: "workspace:*", "workspace:^", "workspace:~".
_WORKSPACE_MARKER_RE = re.compile(r'^workspace:[*^~]$')

# Leading non-digit part of a committish, e.g. "v" in "v1.2.3".
_TAG_PREFIX_RE = re.compile(r'^\D*')

_PUBLISH_TRANSLATIONS = {
    'workspace:*': '',
    'workspace:~': '~',
    'workspace:^': '^',
}


class CallSite(str, Enum):
    """Which command triggered the rewrite."""

    PUBLISH = 'publish'
    VERSION = 'version'


def find_collection(manifest: Manifest, dep_name: str) -> tuple[str, dict[str, str]] | None:
    """Return ``(key, collection)`` for the first collection holding ``dep_name``."""
    for key in COLLECTION_ORDER:
        collection = manifest.get(key)
        if isinstance(collection, dict) and collection.get(dep_name):
            return key, collection
    return None


def workspace_specifier(
    workspace_target: str,
    plain: str,
    new_version: str,
    *,
    publish: bool,
    strict_workspace_match: bool,
) -> str:
    """Compute the value for a dependency declared with ``workspace:``.

    Args:
        workspace_target: The original literal, e.g. ``"workspace:^"``.
        plain: The ``{save_prefix}{new_version}`` value already computed.
        new_version: The version being propagated.
        publish: Whether the rewrite happens during publish.
        strict_workspace_match: Translate symbolic targets on publish.

    Returns:
        The string to store in the manifest.
    """
    if publish:
        if strict_workspace_match and workspace_target in _PUBLISH_TRANSLATIONS:
            return f'{_PUBLISH_TRANSLATIONS[workspace_target]}{new_version}'
        return plain

    if _WORKSPACE_MARKER_RE.match(workspace_target):
        return workspace_target
    return f'{WORKSPACE_PROTOCOL}{plain}'


def update_local_dependency(
    manifest: Manifest,
    resolved: ResolvedDependencySpecifier,
    new_version: str,
    save_prefix: str,
    *,
    strict_workspace_match: bool = True,
    called_by: CallSite | str | None = None,
) -> str | None:
    """Point one dependency of ``manifest`` at ``new_version``.

    Args:
        manifest: The consuming package's manifest (mutated in place).
        resolved: The dependency edge to rewrite.
        new_version: The dependency's new version.
        save_prefix: ``""``, ``"^"`` or ``"~"``.
        strict_workspace_match: On publish, translate ``workspace:*``,
            ``workspace:^`` and ``workspace:~`` to concrete ranges.
        called_by: :attr:`CallSite.PUBLISH` for publish; anything else is
            treated as a version bump.

    Returns:
        The value written, or ``None`` when nothing was written.
    """
    dep_name = resolved.name
    located = find_collection(manifest, dep_name)
    new_value: str | None = None

    if located is not None and (resolved.registry or resolved.type == SpecType.DIRECTORY):
        # A version (1.2.3), range (^1.2.3) or directory (file:../pkg).
        new_value = f'{save_prefix}{new_version}'
        if resolved.explicit_workspace:
            new_value = workspace_specifier(
                resolved.workspace_target or '',
                new_value,
                new_version,
                publish=called_by == CallSite.PUBLISH,
                strict_workspace_match=strict_workspace_match,
            )
    elif resolved.git_committish:
        match = _TAG_PREFIX_RE.match(resolved.git_committish)
        tag_prefix = match.group(0) if match else ''
        new_value = _retarget_hosted(resolved, f'{tag_prefix}{new_version}')
    elif resolved.git_range:
        new_value = _retarget_hosted(resolved, f'semver:{save_prefix}{new_version}')

    if new_value is None or located is None:
        logger.debug('dependency_not_rewritten', package=manifest.name, dep=dep_name, spec_type=resolved.type)
        return None

    key, collection = located
    old_value = collection[dep_name]
    collection[dep_name] = new_value
    logger.debug(
        'dependency_rewritten',
        package=manifest.name,
        dep=dep_name,
        section=key,
        old=old_value,
        new=new_value,
    )
    return new_value


def _retarget_hosted(resolved: ResolvedDependencySpecifier, committish: str) -> str | None:
    """Set the hosted committish and return the full URL, git+ included."""
    hosted = resolved.hosted
    if hosted is None:
        return None
    hosted.committish = committish
    return hosted.to_string(no_git_plus=False, no_committish=False)


__all__ = [
    'COLLECTION_ORDER',
    'CallSite',
    'find_collection',
    'update_local_dependency',
    'workspace_specifier',
]
