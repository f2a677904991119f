# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from pathlib import Path

import click

from lxdinit import log
from lxdinit.commands import drivers as drivers_cmds
from lxdinit.commands import init as init_cmds
from lxdinit.core.common import CONTEXT_SETTINGS
from lxdinit.core.settings import load_settings
from lxdinit.utils import CatchGroup

LOG = logging.getLogger()


@click.group("init-group", context_settings=CONTEXT_SETTINGS, cls=CatchGroup)
@click.option(
    "--lxd-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="LXD data directory, inferred from the environment by default.",
)
@click.option("-v", "--verbose", is_flag=True, help="Increase output verbosity")
@click.pass_context
def cli(ctx, lxd_dir: Path | None, verbose: bool):
    """Plan the configuration of an LXD node.

    Answers are turned into a preseed usable with `lxd init --preseed`.
    """
    log.setup_logging(log.log_file_path(), verbose)
    ctx.obj = load_settings(lxd_dir)


def main():
    cli.add_command(init_cmds.init)
    cli.add_command(drivers_cmds.drivers)
    cli(obj=None)


if __name__ == "__main__":
    main()
