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

"""lockstep: keep local dependency specifiers and lock files in sync.

After a version bump or publish in a JS monorepo, every package that
depends on a bumped sibling must point at the new version, written in
the protocol its specifier already uses (semver range, ``file:``, git
committish, or ``workspace:``). Lock files must follow.

Usage::

    from lockstep import Manifest, load_lockfile, resolve_specifier

    consumer = Manifest.lazy('packages/b')
    edge = resolve_specifier('pkg-a', consumer.dependencies['pkg-a'])
    consumer.update_local_dependency(edge, '1.3.0', '^')
    await consumer.serialize()
"""

from lockstep.config import SyncConfig, load_config
from lockstep.discovery import load_manifests, load_manifests_sync, make_file_finder, make_sync_file_finder
from lockstep.errors import E, ErrorCode, LockstepError
from lockstep.lockfile import (
    LockfileInformation,
    PackageManager,
    load_lockfile,
    save_lockfile,
    update_classic_lockfile_version,
    update_npm_lockfile_version2,
    update_pnpm_lockfile,
    update_temp_modern_lockfile_version,
)
from lockstep.manifest import Manifest
from lockstep.rewrite import CallSite, update_local_dependency
from lockstep.specifier import HostedGitInfo, ResolvedDependencySpecifier, SpecType, resolve_specifier

__version__ = '0.1.0'

__all__ = [
    'CallSite',
    'E',
    'ErrorCode',
    'HostedGitInfo',
    'LockfileInformation',
    'LockstepError',
    'Manifest',
    'PackageManager',
    'ResolvedDependencySpecifier',
    'SpecType',
    'SyncConfig',
    '__version__',
    'load_config',
    'load_lockfile',
    'load_manifests',
    'load_manifests_sync',
    'make_file_finder',
    'make_sync_file_finder',
    'resolve_specifier',
    'save_lockfile',
    'update_classic_lockfile_version',
    'update_local_dependency',
    'update_npm_lockfile_version2',
    'update_pnpm_lockfile',
    'update_temp_modern_lockfile_version',
]
