# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import logging
from pathlib import Path

import click
from rich.console import Console

from lxdinit.assembler import ConfigAssembler
from lxdinit.core.common import FORMAT_JSON, FORMAT_YAML
from lxdinit.core.settings import Settings
from lxdinit.remote.client import Client
from lxdinit.remote.service import RemoteServiceUnavailableException
from lxdinit.utils import click_option_show_hints

LOG = logging.getLogger(__name__)
console = Console()


def _write_to_file(preseed: str, output: Path):
    """Helper for writing the preseed to a file."""
    try:
        with output.open("w") as f:
            f.write(preseed)
    except OSError as e:
        raise click.ClickException(str(e)) from e
    console.print(f"Preseed written to file: {str(output)}")


@click.command()
@click.option(
    "-f",
    "--format",
    type=click.Choice([FORMAT_YAML, FORMAT_JSON]),
    default=FORMAT_YAML,
    help="Output format.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(
        file_okay=True,
        dir_okay=False,
        writable=True,
        resolve_path=True,
        path_type=Path,
    ),
    help="Output file for the preseed.",
)
@click_option_show_hints
@click.pass_context
def init(
    ctx: click.Context,
    format: str,
    output: Path | None,
    show_hints: bool,
) -> None:
    """Interactively plan the configuration of this LXD node.

    The result is an `lxd init --preseed` document, printed or written to
    the output file. Nothing is applied to the node.
    """
    settings: Settings = ctx.obj
    client = Client.from_socket(settings.socket_path)
    try:
        client.server.wait_ready()
    except RemoteServiceUnavailableException as e:
        raise click.ClickException(
            f"LXD is not reachable on {settings.socket_path}: {e}"
        ) from e

    assembler = ConfigAssembler(settings, client, console, show_hints)
    # Offer a preview only when the preseed does not go to the terminal anyway
    config = assembler.assemble(offer_preview=output is not None)
    preseed = config.render(format)
    if output:
        _write_to_file(preseed, output)
    else:
        click.echo(preseed)
