# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
import os
from pathlib import Path
from typing import Mapping

import pydantic
from snaphelpers import Snap

LOG = logging.getLogger(__name__)

DEFAULT_PORT = 8443
DEFAULT_VAR_PATH = Path("/var/lib/lxd")
LXD_DIR_ENV = "LXD_DIR"
SNAP_ENV = "SNAP"


class Settings(pydantic.BaseModel):
    """Where the local LXD daemon keeps its state, and how to reach it."""

    var_path: Path = DEFAULT_VAR_PATH
    default_port: int = pydantic.Field(default=DEFAULT_PORT, ge=1, le=65535)

    @property
    def socket_path(self) -> Path:
        return self.var_path / "unix.socket"

    @property
    def server_cert(self) -> Path:
        return self.var_path / "server.crt"

    @property
    def server_key(self) -> Path:
        return self.var_path / "server.key"

    def storage_pool_path(self, name: str) -> Path:
        """Return the directory a subvolume-backed pool would live in."""
        return self.var_path / "storage-pools" / name


def infer_var_path(environ: Mapping[str, str] | None = None) -> Path:
    """Compute the LXD data directory from the environment.

    LXD_DIR wins; inside a snap the daemon lives under $SNAP_COMMON/lxd,
    otherwise the distribution default is used.
    """
    environ = os.environ if environ is None else environ
    if lxd_dir := environ.get(LXD_DIR_ENV):
        return Path(lxd_dir)

    if SNAP_ENV in environ:
        try:
            snap = Snap(environ=dict(environ))
            return Path(snap.paths.common) / "lxd"
        except KeyError:
            LOG.debug("Incomplete snap environment, using default LXD path")

    return DEFAULT_VAR_PATH


def load_settings(
    var_path: Path | None = None, environ: Mapping[str, str] | None = None
) -> Settings:
    """Load settings, an explicit data directory overriding the environment."""
    settings = Settings(var_path=var_path or infer_var_path(environ))
    LOG.debug(f"Using LXD data directory {settings.var_path}")
    return settings
