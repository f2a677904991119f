# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import types
from unittest.mock import MagicMock, Mock, patch

import pytest

from lxdinit.core import host as host_module
from lxdinit.core.preseed import InitConfig
from lxdinit.core.settings import Settings

GIB = 1024**3


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a scratch LXD data directory."""
    return Settings(var_path=tmp_path / "lxd")


@pytest.fixture
def config():
    return InitConfig.empty()


@pytest.fixture
def console():
    return MagicMock()


@pytest.fixture
def local_client():
    """Client of a local daemon without any pool or network."""
    client = Mock()
    client.storage_pools.exists.return_value = False
    client.networks.exists.return_value = False
    return client


@pytest.fixture
def prompts():
    """Scripted answers for every kind of rich prompt.

    Tests set side_effect on ask (strings and passwords), confirm (yes/no)
    and integer to the answers the operator gives, in order.
    """
    with (
        patch("lxdinit.core.questions.Prompt.ask") as ask,
        patch("lxdinit.core.questions.Confirm.ask") as confirm,
        patch("lxdinit.core.questions.IntPrompt.ask") as integer,
    ):
        yield types.SimpleNamespace(ask=ask, confirm=confirm, integer=integer)


@pytest.fixture
def host():
    """A plain ext4 host without storage tools, outside any user namespace."""
    with patch.multiple(
        "lxdinit.core.host",
        detect_filesystem=Mock(return_value="ext4"),
        free_space=Mock(return_value=100 * GIB),
        find_binary=Mock(return_value=None),
        running_in_userns=Mock(return_value=False),
        default_idmap=Mock(return_value=[]),
        idmap_usable=Mock(return_value=False),
        interface_exists=Mock(return_value=True),
        interface_is_bridge=Mock(return_value=False),
        is_block_device=Mock(return_value=False),
        network_interface_address=Mock(return_value="10.1.1.10"),
    ):
        yield host_module
