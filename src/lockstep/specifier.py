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

"""Dependency specifier resolution.

Turns a ``(name, spec)`` pair taken from a ``package.json`` dependency
collection into a :class:`ResolvedDependencySpecifier` that the
rewriter can act on.

Specifier grammar::

    "^1.2.3", ">=1 <2", "1.x"          → range
    "1.2.3", "v1.2.3"                   → version
    "latest", "next"                    → tag
    "file:../pkg", "../pkg"             → directory
    "file:../pkg.tgz"                   → file
    "github:user/repo#v1.2.3"           → git   (git_committish="v1.2.3")
    "git+ssh://git@host/u/r.git#semver:^1"
                                        → git   (git_range="^1")
    "https://example.com/pkg.tgz"       → remote
    "npm:other@^1"                      → alias
    "workspace:^1.2.3"                  → explicit_workspace + inner spec

``version``, ``range`` and ``tag`` are *registry* specifiers.

Hosted git URLs on GitHub, GitLab and Bitbucket are parsed into a
:class:`HostedGitInfo` whose ``committish`` can be changed and whose
:meth:`~HostedGitInfo.to_string` renders the URL back in the same
representation it was written in.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlsplit

from lockstep.errors import E, LockstepError

WORKSPACE_PROTOCOL = 'workspace:'

_NAME_RE = re.compile(r'^(?:@[a-z0-9-*~][a-z0-9-*._~]*/)?[a-z0-9-~][a-z0-9-._~]*$')
_RESERVED_NAMES = frozenset({'node_modules', 'favicon.ico'})
_MAX_NAME_LENGTH = 214

_VERSION_RE = re.compile(
    r'^[v=]?\s*(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)$',
)
_COMPARATOR_RE = re.compile(
    r'^(?:[<>]=?|=|~>?|\^)?v?(?:[*xX]|\d+)(?:\.(?:[*xX]|\d+)){0,2}'
    r'(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$',
)
_OPERATOR_SPACE_RE = re.compile(r'([<>]=?|=|~>?|\^)\s+')
_TAG_RE = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')
_TARBALL_RE = re.compile(r'\.(?:tgz|tar\.gz|tar)$')
_WINDOWS_PATH_RE = re.compile(r'^[a-zA-Z]:[\\/]')

_SHORTCUT_RE = re.compile(r'^(github|gitlab|bitbucket):([^/#]+)/([^/#]+?)(?:\.git)?(?:#(.*))?$')
_BARE_GITHUB_RE = re.compile(r'^([A-Za-z0-9][\w.-]*)/([\w.-]+?)(?:\.git)?(?:#(.*))?$')
_SCP_RE = re.compile(r'^git@([^:/]+):([^/]+)/([^/#]+?)(?:\.git)?(?:#(.*))?$')

_GIT_PREFIXES = ('git+', 'git://', 'git@', 'ssh://')

HOSTED_DOMAINS: dict[str, str] = {
    'github': 'github.com',
    'gitlab': 'gitlab.com',
    'bitbucket': 'bitbucket.org',
}
_DOMAIN_TO_HOST = {domain: host for host, domain in HOSTED_DOMAINS.items()}


class SpecType(str, Enum):
    """How a dependency specifier is fetched."""

    VERSION = 'version'
    RANGE = 'range'
    TAG = 'tag'
    DIRECTORY = 'directory'
    FILE = 'file'
    GIT = 'git'
    REMOTE = 'remote'
    ALIAS = 'alias'


_REGISTRY_TYPES = frozenset({SpecType.VERSION, SpecType.RANGE, SpecType.TAG})


@dataclass
class HostedGitInfo:
    """A git repository on a known hosting service.

    Attributes:
        type: Host kind: ``"github"``, ``"gitlab"`` or ``"bitbucket"``.
        domain: Host domain, e.g. ``"github.com"``.
        user: Owning user or organization.
        project: Repository name without ``.git``.
        committish: Ref after ``#``; mutable so a rewrite can retarget it.
        default_representation: One of ``"shortcut"``, ``"https"``,
            ``"sshurl"``, ``"ssh"`` or ``"git"``; controls :meth:`to_string`.
    """

    type: str
    domain: str
    user: str
    project: str
    committish: str | None = None
    default_representation: str = 'shortcut'

    def to_string(self, *, no_git_plus: bool = False, no_committish: bool = False) -> str:
        """Render the repository URL in its original representation."""
        rep = self.default_representation
        path = f'{self.user}/{self.project}'
        if rep == 'shortcut':
            url = f'{self.type}:{path}'
        elif rep == 'https':
            url = f'https://{self.domain}/{path}.git'
            if not no_git_plus:
                url = f'git+{url}'
        elif rep == 'sshurl':
            url = f'ssh://git@{self.domain}/{path}.git'
            if not no_git_plus:
                url = f'git+{url}'
        elif rep == 'ssh':
            url = f'git@{self.domain}:{path}.git'
        else:
            url = f'git://{self.domain}/{path}.git'

        if self.committish and not no_committish:
            url = f'{url}#{self.committish}'
        return url

    def __str__(self) -> str:
        """Full URL, including the committish."""
        return self.to_string()


@dataclass
class ResolvedDependencySpecifier:
    """One dependency edge after specifier resolution.

    Attributes:
        name: Dependency name; never changes across a rewrite.
        raw_spec: The specifier exactly as written in the manifest.
        type: How the dependency is fetched, or ``None`` if unresolved.
        fetch_spec: Normalized spec: the range, version, tag, absolute
            path or URL.
        save_spec: Spec to persist for directory/file/git dependencies.
        scope: ``@scope`` part of the name, if any.
        git_committish: ``#ref`` fragment of a git specifier.
        git_range: Range from a ``#semver:<range>`` fragment.
        hosted: Parsed host info for git specifiers on known hosts.
        explicit_workspace: The spec used the ``workspace:`` protocol.
        workspace_target: The full original ``workspace:...`` literal.
    """

    name: str
    raw_spec: str = ''
    type: SpecType | None = None
    fetch_spec: str = ''
    save_spec: str | None = None
    scope: str | None = None
    git_committish: str | None = None
    git_range: str | None = None
    hosted: HostedGitInfo | None = None
    explicit_workspace: bool = False
    workspace_target: str | None = None

    @property
    def registry(self) -> bool:
        """True for version, range and tag specifiers."""
        return self.type in _REGISTRY_TYPES


def validate_name(name: str) -> None:
    """Raise :class:`LockstepError` if ``name`` is not a valid package name."""
    problem = ''
    if not name:
        problem = 'name may not be empty'
    elif len(name) > _MAX_NAME_LENGTH:
        problem = f'name may not be longer than {_MAX_NAME_LENGTH} characters'
    elif name != name.strip():
        problem = 'name may not have leading or trailing spaces'
    elif name.startswith(('.', '_')):
        problem = 'name may not start with "." or "_"'
    elif name.lower() in _RESERVED_NAMES:
        problem = f'"{name}" is a reserved name'
    elif name != name.lower():
        problem = 'name may not contain capital letters'
    elif not _NAME_RE.match(name):
        problem = 'name may only contain URL-safe characters'

    if problem:
        raise LockstepError(
            code=E.SPEC_INVALID_NAME,
            message=f'Invalid package name "{name}": {problem}',
            hint='See https://docs.npmjs.com/cli/configuring-npm/package-json#name',
        )


def _scope_of(name: str) -> str | None:
    if name.startswith('@') and '/' in name:
        return name.split('/', 1)[0]
    return None


def _is_path_spec(spec: str) -> bool:
    return spec.startswith(('file:', '.', '/', '~/')) or bool(_WINDOWS_PATH_RE.match(spec))


def _is_git_spec(spec: str) -> bool:
    if spec.startswith(_GIT_PREFIXES) or _SHORTCUT_RE.match(spec):
        return True
    return bool(_BARE_GITHUB_RE.match(spec)) and not spec.startswith('@')


def is_range(spec: str) -> bool:
    """Return True if ``spec`` is a valid semver range."""
    spec = spec.strip()
    if not spec:
        return True
    spec = _OPERATOR_SPACE_RE.sub(r'\1', spec)
    for comparator_set in spec.split('||'):
        parts = comparator_set.split()
        if not parts:
            # Empty alternatives ("1.x || ") match anything in npm.
            continue
        if len(parts) == 3 and parts[1] == '-':
            parts = [parts[0], parts[2]]
        if not all(_COMPARATOR_RE.match(part) for part in parts):
            return False
    return True


def parse_hosted(spec: str) -> HostedGitInfo | None:
    """Parse a git specifier on a known host, or return ``None``."""
    match = _SHORTCUT_RE.match(spec)
    if match:
        host, user, project, committish = match.groups()
        return HostedGitInfo(host, HOSTED_DOMAINS[host], user, project, committish or None, 'shortcut')

    match = _SCP_RE.match(spec)
    if match:
        domain, user, project, committish = match.groups()
        host = _DOMAIN_TO_HOST.get(domain)
        if host is None:
            return None
        return HostedGitInfo(host, domain, user, project, committish or None, 'ssh')

    if '://' not in spec:
        match = _BARE_GITHUB_RE.match(spec)
        if match and not spec.startswith('@'):
            user, project, committish = match.groups()
            return HostedGitInfo('github', 'github.com', user, project, committish or None, 'shortcut')
        return None

    parts = urlsplit(spec.removeprefix('git+'))
    host = _DOMAIN_TO_HOST.get(parts.hostname or '')
    segments = [s for s in parts.path.split('/') if s]
    if host is None or len(segments) != 2:
        return None
    if parts.scheme in ('https', 'http'):
        representation = 'https'
    elif parts.scheme == 'ssh':
        representation = 'sshurl'
    elif parts.scheme == 'git':
        representation = 'git'
    else:
        return None
    user, project = segments
    return HostedGitInfo(
        host,
        HOSTED_DOMAINS[host],
        user,
        project.removesuffix('.git'),
        parts.fragment or None,
        representation,
    )


def _resolve_git(result: ResolvedDependencySpecifier, spec: str) -> ResolvedDependencySpecifier:
    result.type = SpecType.GIT
    result.hosted = parse_hosted(spec)
    fragment = spec.partition('#')[2]
    if fragment.startswith('semver:'):
        result.git_range = fragment.removeprefix('semver:')
    elif fragment:
        result.git_committish = fragment
    result.fetch_spec = spec.partition('#')[0]
    result.save_spec = result.hosted.to_string() if result.hosted else spec
    return result


def _resolve_path(result: ResolvedDependencySpecifier, spec: str, where: str) -> ResolvedDependencySpecifier:
    path = spec.removeprefix('file:')
    if path.startswith('//'):
        path = path[2:]
    path = os.path.expanduser(path)
    result.type = SpecType.FILE if _TARBALL_RE.search(path) else SpecType.DIRECTORY
    result.fetch_spec = os.path.normpath(os.path.join(where, path))
    result.save_spec = 'file:' + os.path.relpath(result.fetch_spec, where).replace(os.sep, '/')
    return result


def resolve_specifier(
    name: str | None,
    spec: str,
    where: str | os.PathLike[str] | None = None,
) -> ResolvedDependencySpecifier:
    """Resolve a dependency specifier.

    Args:
        name: Dependency name. ``None`` or empty is only allowed for
            anonymous directory specs (a manifest without a name).
        spec: The specifier string from the manifest.
        where: Directory relative paths are resolved against; defaults
            to the current working directory.

    Returns:
        The resolved specifier.

    Raises:
        LockstepError: ``LS-SPEC-INVALID-NAME`` for a bad name,
            ``LS-SPEC-INVALID`` for a specifier that matches no form.
    """
    where = os.fspath(where) if where is not None else os.getcwd()
    spec = spec.strip()
    if name:
        validate_name(name)
    elif not _is_path_spec(spec):
        validate_name(name or '')

    result = ResolvedDependencySpecifier(name=name or '', raw_spec=spec, scope=_scope_of(name or ''))

    if spec.startswith(WORKSPACE_PROTOCOL):
        inner = spec[len(WORKSPACE_PROTOCOL):]
        inner_result = resolve_specifier(name, '*' if inner in ('', '*', '^', '~') else inner, where)
        inner_result.raw_spec = spec
        inner_result.explicit_workspace = True
        inner_result.workspace_target = spec
        return inner_result

    if spec.startswith('npm:'):
        result.type = SpecType.ALIAS
        result.fetch_spec = spec.removeprefix('npm:')
        return result

    if _is_path_spec(spec):
        return _resolve_path(result, spec, where)

    if _is_git_spec(spec):
        return _resolve_git(result, spec)

    if spec.startswith(('http://', 'https://')):
        if parse_hosted(spec) is not None:
            return _resolve_git(result, spec)
        result.type = SpecType.REMOTE
        result.fetch_spec = spec
        return result

    match = _VERSION_RE.match(spec)
    if match:
        result.type = SpecType.VERSION
        result.fetch_spec = match.group(1)
        return result

    if is_range(spec):
        result.type = SpecType.RANGE
        result.fetch_spec = spec or '*'
        return result

    if _TAG_RE.match(spec):
        result.type = SpecType.TAG
        result.fetch_spec = spec
        return result

    raise LockstepError(
        code=E.SPEC_INVALID,
        message=f'Unsupported specifier for "{name}": "{spec}"',
        hint='Use a semver range, a file: path, a git URL or the workspace: protocol.',
    )


__all__ = [
    'HOSTED_DOMAINS',
    'WORKSPACE_PROTOCOL',
    'HostedGitInfo',
    'ResolvedDependencySpecifier',
    'SpecType',
    'is_range',
    'parse_hosted',
    'resolve_specifier',
    'validate_name',
]
