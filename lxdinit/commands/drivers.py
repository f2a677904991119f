# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging

import click

from lxdinit.core import host
from lxdinit.core.settings import Settings
from lxdinit.steps.storage import detect_backing_filesystem
from lxdinit.storage.manager import StorageDriverManager

LOG = logging.getLogger(__name__)


@click.command()
@click.pass_context
def drivers(ctx: click.Context) -> None:
    """List the storage drivers and the pools they can serve on this host."""
    settings: Settings = ctx.obj
    backing_fs = detect_backing_filesystem(settings)
    LOG.debug(f"{settings.var_path} is on {backing_fs}")
    StorageDriverManager().display_drivers_table(
        backing_fs, in_userns=host.running_in_userns()
    )
