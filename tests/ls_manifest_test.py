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

"""Tests for the Manifest model."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from lockstep.errors import E, LockstepError
from lockstep.manifest import Manifest


def _factory(tmp_path: Path, doc: dict[str, Any]) -> Manifest:
    """Build a manifest under <tmp>/path/to/<name> rooted at <tmp>."""
    return Manifest(doc, tmp_path / 'path' / 'to' / (doc.get('name') or 'package'), tmp_path)


def _write(path: Path, doc: dict[str, Any], indent: int | str = 2) -> None:
    path.mkdir(parents=True, exist_ok=True)
    (path / 'package.json').write_text(json.dumps(doc, indent=indent) + '\n')


class TestManifestProperties:
    """Read-only and mutable fields."""

    def test_name_and_location(self, tmp_path: Path) -> None:
        """Name, location and root path come from the constructor."""
        pkg = _factory(tmp_path, {'name': 'get-name'})
        assert pkg.name == 'get-name'
        assert pkg.location == tmp_path / 'path' / 'to' / 'get-name'
        assert pkg.root_path == tmp_path

    def test_root_defaults_to_location(self, tmp_path: Path) -> None:
        """Without a root the location is the root."""
        pkg = Manifest({'name': 'solo'}, tmp_path)
        assert pkg.root_path == tmp_path

    def test_invalid_name_raises(self, tmp_path: Path) -> None:
        """An invalid package name is fatal."""
        with pytest.raises(LockstepError) as exc_info:
            _factory(tmp_path, {'name': '.bad'})
        assert exc_info.value.code is E.SPEC_INVALID_NAME

    def test_resolved(self, tmp_path: Path) -> None:
        """resolved is a directory resolution relative to the root."""
        pkg = _factory(tmp_path, {'name': 'get-resolved'})
        assert pkg.resolved.name == 'get-resolved'
        assert pkg.resolved.save_spec == 'file:path/to/get-resolved'
        assert pkg.resolved.fetch_spec == str(pkg.location)

    def test_version(self, tmp_path: Path) -> None:
        """version is readable and writable."""
        pkg = _factory(tmp_path, {'version': '1.0.0'})
        assert pkg.version == '1.0.0'
        pkg.version = '2.0.0'
        assert pkg.version == '2.0.0'
        assert pkg.get('version') == '2.0.0'

    def test_workspaces(self, tmp_path: Path) -> None:
        """workspaces is readable and writable."""
        pkg = _factory(tmp_path, {'name': 'get-workspaces'})
        assert pkg.workspaces is None
        pkg.workspaces = ['modules/*']
        assert pkg.workspaces == ['modules/*']

    def test_private_defaults_false(self, tmp_path: Path) -> None:
        """private is False unless set."""
        assert _factory(tmp_path, {'name': 'not-private'}).private is False
        assert _factory(tmp_path, {'name': 'is-private', 'private': True}).private is True

    def test_locations(self, tmp_path: Path) -> None:
        """Derived paths hang off the package location."""
        pkg = _factory(tmp_path, {'name': 'paths'})
        assert pkg.manifest_location == pkg.location / 'package.json'
        assert pkg.bin_location == pkg.location / 'node_modules' / '.bin'
        assert pkg.node_modules_location == pkg.location / 'node_modules'

    def test_repr_hides_document(self, tmp_path: Path) -> None:
        """repr() shows identity, not the raw document."""
        pkg = _factory(tmp_path, {'name': 'quiet', 'secret': 'token'})
        assert 'quiet' in repr(pkg)
        assert 'token' not in repr(pkg)


class TestContents:
    """The publish contents directory."""

    def test_defaults_to_location(self, tmp_path: Path) -> None:
        """Without overrides contents is the package location."""
        pkg = _factory(tmp_path, {'name': 'contents'})
        assert pkg.contents == pkg.location

    def test_publish_config_directory(self, tmp_path: Path) -> None:
        """publishConfig.directory is honored."""
        pkg = _factory(tmp_path, {'name': 'contents', 'publishConfig': {'directory': 'dist'}})
        assert pkg.contents == pkg.location / 'dist'

    def test_publish_config_without_directory(self, tmp_path: Path) -> None:
        """publishConfig without directory falls back to the location."""
        pkg = _factory(tmp_path, {'name': 'contents', 'publishConfig': {'tag': 'next'}})
        assert pkg.contents == pkg.location

    def test_setter_wins(self, tmp_path: Path) -> None:
        """An explicit override beats publishConfig."""
        pkg = _factory(tmp_path, {'name': 'contents', 'publishConfig': {'directory': 'dist'}})
        pkg.contents = 'build'
        assert pkg.contents == pkg.location / 'build'


class TestBin:
    """Executable mapping."""

    def test_object_form(self, tmp_path: Path) -> None:
        """Object bins are returned as a copy."""
        pkg = _factory(tmp_path, {'name': 'obj-bin', 'bin': {'cli': 'bin/cli.js'}})
        assert pkg.bin == {'cli': 'bin/cli.js'}
        pkg.bin['other'] = 'x'
        assert pkg.get('bin') == {'cli': 'bin/cli.js'}

    def test_string_form(self, tmp_path: Path) -> None:
        """A string bin is keyed by the package name."""
        pkg = _factory(tmp_path, {'name': 'string-bin', 'bin': 'bin/cli.js'})
        assert pkg.bin == {'string-bin': 'bin/cli.js'}

    def test_strips_scope(self, tmp_path: Path) -> None:
        """The scope is stripped from string bin names."""
        pkg = Manifest({'name': '@acme/tool', 'bin': 'cli.js'}, tmp_path / 'tool', tmp_path)
        assert pkg.bin == {'tool': 'cli.js'}

    def test_missing(self, tmp_path: Path) -> None:
        """No bin field gives an empty mapping."""
        assert _factory(tmp_path, {'name': 'no-bin'}).bin == {}


class TestCollections:
    """Dependency collections and scripts."""

    def test_live_collections(self, tmp_path: Path) -> None:
        """Collections are the dicts inside the document."""
        pkg = _factory(
            tmp_path,
            {
                'name': 'deps',
                'dependencies': {'a': '^1.0.0'},
                'devDependencies': {'b': '^1.0.0'},
                'optionalDependencies': {'c': '^1.0.0'},
                'peerDependencies': {'d': '>=1.0.0'},
            },
        )
        assert pkg.dependencies == {'a': '^1.0.0'}
        assert pkg.dev_dependencies == {'b': '^1.0.0'}
        assert pkg.optional_dependencies == {'c': '^1.0.0'}
        assert pkg.peer_dependencies == {'d': '>=1.0.0'}

        assert pkg.dependencies is not None
        pkg.dependencies['a'] = '^2.0.0'
        assert pkg.to_json()['dependencies'] == {'a': '^2.0.0'}

    def test_missing_collection_is_none(self, tmp_path: Path) -> None:
        """Absent collections read as None."""
        assert _factory(tmp_path, {'name': 'bare'}).dependencies is None

    def test_scripts_are_a_copy(self, tmp_path: Path) -> None:
        """Editing scripts never touches the input document."""
        doc = {'name': 'scripts', 'scripts': {'my-script': 'keep'}}
        pkg = _factory(tmp_path, doc)
        pkg.scripts['my-script'] = 'tweaked'
        assert pkg.scripts['my-script'] == 'tweaked'
        assert doc['scripts'] == {'my-script': 'keep'}


class TestGetSetToJson:
    """Map-like access and serialization copies."""

    def test_get(self, tmp_path: Path) -> None:
        """get() returns stored values or None."""
        pkg = _factory(tmp_path, {'name': 'gettable', 'my-value': 'foo'})
        assert pkg.get('missing') is None
        assert pkg.get('my-value') == 'foo'

    def test_set_is_chainable(self, tmp_path: Path) -> None:
        """set() returns the manifest."""
        pkg = _factory(tmp_path, {'name': 'chainable'})
        assert pkg.set('foo', True).set('bar', False).get('foo') is True
        assert pkg.to_json() == {'name': 'chainable', 'foo': True, 'bar': False}

    def test_to_json_is_a_copy(self, tmp_path: Path) -> None:
        """Mutating the copy leaves the manifest alone."""
        doc = {'name': 'is-cloned', 'files': ['dist'], 'dependencies': {'a': '^1.0.0'}}
        pkg = _factory(tmp_path, doc)
        out = pkg.to_json()
        assert out == doc
        assert out is not doc

        out['files'].append('src')
        out['dependencies']['a'] = 'changed'
        out['name'] = 'renamed'
        assert pkg.get('files') == ['dist']
        assert pkg.dependencies == {'a': '^1.0.0'}
        assert pkg.get('name') == 'is-cloned'


class TestLazy:
    """Manifest.lazy()."""

    def test_from_directory(self, tmp_path: Path) -> None:
        """A directory path loads its package.json."""
        _write(tmp_path / 'lazy-dir', {'name': 'lazy-dir', 'version': '1.0.0'})
        pkg = Manifest.lazy(tmp_path / 'lazy-dir')
        assert pkg.name == 'lazy-dir'
        assert pkg.location == (tmp_path / 'lazy-dir').resolve()

    def test_from_manifest_path(self, tmp_path: Path) -> None:
        """A package.json path loads that file."""
        _write(tmp_path / 'lazy-file', {'name': 'lazy-file'})
        pkg = Manifest.lazy(str(tmp_path / 'lazy-file' / 'package.json'))
        assert pkg.name == 'lazy-file'

    def test_from_document(self, tmp_path: Path) -> None:
        """A raw document uses the given directory."""
        pkg = Manifest.lazy({'name': 'lazy-doc'}, tmp_path)
        assert pkg.location == tmp_path

    def test_passthrough(self, tmp_path: Path) -> None:
        """An existing instance is returned as is."""
        pkg = _factory(tmp_path, {'name': 'existing'})
        assert Manifest.lazy(pkg) is pkg

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """A missing package.json is fatal."""
        with pytest.raises(LockstepError) as exc_info:
            Manifest.lazy(tmp_path / 'nowhere')
        assert exc_info.value.code is E.MANIFEST_READ_FAILED

    def test_non_utf8_raises(self, tmp_path: Path) -> None:
        """An undecodable package.json is a read failure."""
        (tmp_path / 'package.json').write_bytes(b'\xff\xfe{}')
        with pytest.raises(LockstepError) as exc_info:
            Manifest.lazy(tmp_path)
        assert exc_info.value.code is E.MANIFEST_READ_FAILED


class TestRefresh:
    """Manifest.refresh()."""

    @pytest.mark.asyncio
    async def test_reloads_document_but_not_name(self, tmp_path: Path) -> None:
        """refresh() swaps the document; the name stays fixed."""
        pkg = Manifest({'name': 'refresh'}, tmp_path / 'refresh', tmp_path)
        _write(pkg.location, {'name': 'ignored', 'mutated': True})

        result = await pkg.refresh()

        assert result is pkg
        assert pkg.name == 'refresh'
        assert pkg.get('mutated') is True

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path) -> None:
        """A failed read propagates."""
        pkg = Manifest({'name': 'refresh'}, tmp_path / 'absent', tmp_path)
        with pytest.raises(LockstepError) as exc_info:
            await pkg.refresh()
        assert exc_info.value.code is E.MANIFEST_READ_FAILED

    @pytest.mark.asyncio
    async def test_non_utf8_raises_read_failure(self, tmp_path: Path) -> None:
        """An undecodable package.json is a read failure."""
        (tmp_path / 'package.json').write_bytes(b'{"name": "\xff\xfe"}')
        pkg = Manifest({'name': 'broken'}, tmp_path)
        with pytest.raises(LockstepError) as exc_info:
            await pkg.refresh()
        assert exc_info.value.code is E.MANIFEST_READ_FAILED

    @pytest.mark.asyncio
    async def test_invalid_json_raises(self, tmp_path: Path) -> None:
        """A malformed file propagates a parse error."""
        (tmp_path / 'package.json').write_text('{ not json')
        pkg = Manifest({'name': 'broken'}, tmp_path)
        with pytest.raises(LockstepError) as exc_info:
            await pkg.refresh()
        assert exc_info.value.code is E.MANIFEST_PARSE_ERROR


class TestSerialize:
    """Manifest.serialize()."""

    @pytest.mark.asyncio
    async def test_writes_changes(self, tmp_path: Path) -> None:
        """serialize() writes the current document."""
        pkg = Manifest({'name': 'serialize-me'}, tmp_path)
        result = await pkg.set('woo', 'hoo').serialize()

        assert result is pkg
        written = json.loads((tmp_path / 'package.json').read_text())
        assert written == {'name': 'serialize-me', 'woo': 'hoo'}
        assert (tmp_path / 'package.json').read_text().endswith('}\n')

    @pytest.mark.asyncio
    async def test_sorts_dependencies_and_keeps_indent(self, tmp_path: Path) -> None:
        """Dependency keys are sorted and the file's indent is kept."""
        _write(tmp_path, {'name': 'sorted', 'dependencies': {'z': '1', 'a': '1'}}, indent=4)
        pkg = await Manifest({'name': 'sorted'}, tmp_path).refresh()
        await pkg.serialize()

        text = (tmp_path / 'package.json').read_text()
        assert '\n    "name"' in text
        assert list(json.loads(text)['dependencies']) == ['a', 'z']

    @pytest.mark.asyncio
    async def test_write_failure_raises(self, tmp_path: Path) -> None:
        """A failed write propagates."""
        pkg = Manifest({'name': 'nowhere'}, tmp_path / 'missing-dir')
        with pytest.raises(LockstepError) as exc_info:
            await pkg.serialize()
        assert exc_info.value.code is E.MANIFEST_WRITE_FAILED
