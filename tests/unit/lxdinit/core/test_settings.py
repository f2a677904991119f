# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from pathlib import Path

import pydantic
import pytest

from lxdinit.core.settings import (
    DEFAULT_PORT,
    DEFAULT_VAR_PATH,
    Settings,
    infer_var_path,
    load_settings,
)


def test_paths():
    settings = Settings(var_path=Path("/srv/lxd"))
    assert settings.socket_path == Path("/srv/lxd/unix.socket")
    assert settings.server_cert == Path("/srv/lxd/server.crt")
    assert settings.server_key == Path("/srv/lxd/server.key")
    assert settings.storage_pool_path("default") == Path(
        "/srv/lxd/storage-pools/default"
    )
    assert settings.default_port == DEFAULT_PORT


def test_invalid_port():
    with pytest.raises(pydantic.ValidationError):
        Settings(default_port=0)


class TestInferVarPath:
    def test_lxd_dir(self):
        assert infer_var_path({"LXD_DIR": "/srv/lxd"}) == Path("/srv/lxd")

    def test_lxd_dir_wins_over_snap(self):
        environ = {"LXD_DIR": "/srv/lxd", "SNAP": "/snap/lxd/current"}
        assert infer_var_path(environ) == Path("/srv/lxd")

    def test_default(self):
        assert infer_var_path({}) == DEFAULT_VAR_PATH


def test_load_settings_explicit_path(tmp_path):
    assert load_settings(tmp_path, environ={}).var_path == tmp_path


def test_load_settings_from_environment():
    settings = load_settings(environ={"LXD_DIR": "/srv/lxd"})
    assert settings.var_path == Path("/srv/lxd")
