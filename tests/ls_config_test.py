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

"""Tests for lockstep.config module."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from lockstep.config import CONFIG_FILENAME, SyncConfig, load_config
from lockstep.errors import E, LockstepError


def _write_config(root: Path, content: str) -> Path:
    path = root / CONFIG_FILENAME
    path.write_text(content, encoding='utf-8')
    return path


class TestDefaults:
    """Tests for default configuration values."""

    def test_no_config_file(self, tmp_path: Path) -> None:
        """Missing lockstep.toml gives the defaults."""
        cfg = load_config(tmp_path)
        assert cfg == SyncConfig()
        assert cfg.packages == ['packages/*']
        assert cfg.save_prefix == '^'
        assert cfg.workspace_strict_match is True
        assert cfg.npm_client == ''
        assert cfg.config_path is None

    def test_frozen(self) -> None:
        """SyncConfig instances are immutable."""
        cfg = SyncConfig()
        with pytest.raises(AttributeError):
            cfg.save_prefix = '~'  # type: ignore[misc]


class TestLoadConfig:
    """Tests for reading lockstep.toml."""

    def test_all_keys(self, tmp_path: Path) -> None:
        """Every supported key is read."""
        path = _write_config(
            tmp_path,
            'packages = ["packages/*", "tools/*"]\n'
            'save_prefix = "~"\n'
            'workspace_strict_match = false\n'
            'npm_client = "pnpm"\n',
        )
        cfg = load_config(tmp_path)
        assert cfg.packages == ['packages/*', 'tools/*']
        assert cfg.save_prefix == '~'
        assert cfg.workspace_strict_match is False
        assert cfg.npm_client == 'pnpm'
        assert cfg.config_path == path

    def test_empty_save_prefix(self, tmp_path: Path) -> None:
        """An empty save prefix is allowed."""
        _write_config(tmp_path, 'save_prefix = ""\n')
        assert load_config(tmp_path).save_prefix == ''

    def test_parse_error(self, tmp_path: Path) -> None:
        """Malformed TOML raises LS-CONFIG-PARSE-ERROR."""
        _write_config(tmp_path, 'packages = [\n')
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code is E.CONFIG_PARSE_ERROR


class TestValidation:
    """Tests for key and value validation."""

    def test_unknown_key_suggestion(self, tmp_path: Path) -> None:
        """A typo suggests the closest key."""
        _write_config(tmp_path, 'save_prefx = "^"\n')
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code is E.CONFIG_INVALID_KEY
        assert "Did you mean 'save_prefix'?" in exc_info.value.hint

    def test_unknown_key_without_suggestion(self, tmp_path: Path) -> None:
        """Unrelated keys list the valid ones."""
        _write_config(tmp_path, 'zzz = 1\n')
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert 'Valid keys' in exc_info.value.hint

    def test_wrong_type(self, tmp_path: Path) -> None:
        """Values of the wrong type are rejected."""
        _write_config(tmp_path, 'workspace_strict_match = "yes"\n')
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code is E.CONFIG_INVALID_VALUE

    @pytest.mark.parametrize('content', ['save_prefix = ">="\n', 'npm_client = "bun"\n'])
    def test_bad_choice(self, tmp_path: Path, content: str) -> None:
        """Values outside the allowed set are rejected."""
        _write_config(tmp_path, content)
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code is E.CONFIG_INVALID_VALUE

    def test_bad_package_glob(self, tmp_path: Path) -> None:
        """Package globs must be non-empty strings."""
        _write_config(tmp_path, 'packages = ["packages/*", 3]\n')
        with pytest.raises(LockstepError) as exc_info:
            load_config(tmp_path)
        assert exc_info.value.code is E.CONFIG_INVALID_VALUE


class TestWorkspacesFallback:
    """Tests for falling back to package.json workspaces."""

    def test_list_form(self, tmp_path: Path) -> None:
        """A workspaces list supplies the package globs."""
        (tmp_path / 'package.json').write_text(json.dumps({'name': 'root', 'workspaces': ['modules/*']}))
        assert load_config(tmp_path).packages == ['modules/*']

    def test_object_form(self, tmp_path: Path) -> None:
        """The {"packages": [...]} form is understood."""
        (tmp_path / 'package.json').write_text(
            json.dumps({'name': 'root', 'workspaces': {'packages': ['libs/*'], 'nohoist': ['**/x']}})
        )
        assert load_config(tmp_path).packages == ['libs/*']

    def test_config_wins(self, tmp_path: Path) -> None:
        """An explicit packages key beats workspaces."""
        (tmp_path / 'package.json').write_text(json.dumps({'name': 'root', 'workspaces': ['modules/*']}))
        _write_config(tmp_path, 'packages = ["apps/*"]\n')
        assert load_config(tmp_path).packages == ['apps/*']

    def test_root_without_workspaces(self, tmp_path: Path) -> None:
        """A root manifest without workspaces keeps the default."""
        (tmp_path / 'package.json').write_text(json.dumps({'name': 'root'}))
        assert load_config(tmp_path).packages == ['packages/*']
