# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from unittest.mock import patch

from click.testing import CliRunner

from lxdinit.commands.drivers import drivers
from lxdinit.main import cli


def test_drivers(settings, host):
    host.detect_filesystem.return_value = "btrfs"
    with patch("lxdinit.commands.drivers.StorageDriverManager") as manager:
        result = CliRunner().invoke(drivers, [], obj=settings)
    assert result.exit_code == 0, result.output
    manager.return_value.display_drivers_table.assert_called_once_with(
        "btrfs", in_userns=False
    )


def test_drivers_table_output(settings, host):
    result = CliRunner().invoke(drivers, [], obj=settings)
    assert result.exit_code == 0, result.output
    assert "Storage Drivers" in result.output


def test_cli_lxd_dir(tmp_path, host):
    cli.add_command(drivers)
    with (
        patch("lxdinit.main.log.setup_logging"),
        patch("lxdinit.commands.drivers.StorageDriverManager"),
    ):
        result = CliRunner().invoke(cli, ["--lxd-dir", str(tmp_path), "drivers"])
    assert result.exit_code == 0, result.output
    host.detect_filesystem.assert_called_once_with(tmp_path)
