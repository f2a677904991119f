# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import pytest

from lxdinit.errors import ThinProvisioningToolsMissingException
from lxdinit.storage.base import PoolContext, PoolRole
from lxdinit.storage.drivers import (
    BtrfsDriver,
    CephDriver,
    DirDriver,
    LvmDriver,
    ZfsDriver,
    default_loop_size,
)

GIB = 1024**3


@pytest.fixture
def context(settings):
    return PoolContext(name="default", settings=settings, backing_fs="ext4")


class TestDefaultLoopSize:
    @pytest.mark.parametrize(
        "raw_size,expected",
        [(10, 15), (50, 50), (500, 100)],
    )
    def test_clamped(self, raw_size, expected):
        # The raw size is a fifth of the free space
        assert default_loop_size(raw_size * 5 * GIB) == expected

    def test_bounds(self):
        assert default_loop_size(0) == 15
        assert default_loop_size(75 * GIB) == 15
        assert default_loop_size(500 * GIB) == 100
        assert default_loop_size(501 * GIB) == 100

    def test_monotonic(self):
        sizes = [default_loop_size(free * GIB) for free in range(0, 1000, 7)]
        assert sizes == sorted(sizes)


class TestPoolRole:
    def test_fixed_name(self):
        assert PoolRole.LOCAL.fixed_name == "local"
        assert PoolRole.REMOTE.fixed_name == "remote"
        assert PoolRole.STANDALONE.fixed_name is None

    def test_supported_roles(self):
        assert DirDriver().supports_role(PoolRole.LOCAL)
        assert not DirDriver().supports_role(PoolRole.REMOTE)
        assert CephDriver().supports_role(PoolRole.REMOTE)
        assert not CephDriver().supports_role(PoolRole.LOCAL)
        assert CephDriver().supports_role(PoolRole.STANDALONE)


class TestAvailability:
    def test_dir_needs_nothing(self, host):
        assert DirDriver().is_available()

    def test_missing_tool(self, host):
        assert not ZfsDriver().is_available()
        host.find_binary.assert_called_with("zfs")

    def test_tool_on_path(self, host):
        host.find_binary.return_value = "/usr/sbin/zfs"
        assert ZfsDriver().is_available()


class TestValidateConfig:
    def test_known_keys(self):
        LvmDriver().validate_config({"size": "15GB", "lvm.use_thinpool": "false"})

    def test_unknown_keys(self):
        with pytest.raises(ValueError, match="lvm.use_thinpool"):
            ZfsDriver().validate_config({"lvm.use_thinpool": "false"})


def test_dir_asks_nothing(prompts, context):
    assert DirDriver().prompt_config(context) == {}
    prompts.ask.assert_not_called()
    prompts.confirm.assert_not_called()


class TestBlockStorageDriver:
    def test_loop_device(self, host, prompts, context):
        host.free_space.return_value = 250 * GIB
        # new pool, no existing block device
        prompts.confirm.side_effect = [True, False]
        prompts.integer.side_effect = [30]
        assert ZfsDriver().prompt_config(context) == {"size": "30GB"}
        _, kwargs = prompts.integer.call_args
        assert kwargs["default"] == 50

    def test_loop_device_minimum(self, host, prompts, context):
        prompts.confirm.side_effect = [True, False]
        prompts.integer.side_effect = [0, 1]
        assert ZfsDriver().prompt_config(context) == {"size": "1GB"}

    def test_block_device(self, host, prompts, context):
        host.is_block_device.side_effect = lambda path: path == "/dev/sdb"
        prompts.confirm.side_effect = [True, True]
        prompts.ask.side_effect = ["/tmp/not-a-disk", "/dev/sdb"]
        assert ZfsDriver().prompt_config(context) == {"source": "/dev/sdb"}
        assert prompts.ask.call_count == 2

    def test_existing_pool(self, prompts, context):
        prompts.confirm.side_effect = [False]
        prompts.ask.side_effect = ["", "tank/lxd"]
        assert ZfsDriver().prompt_config(context) == {"source": "tank/lxd"}


class TestBtrfsDriver:
    def test_subvolume_on_btrfs(self, prompts, settings):
        context = PoolContext(name="default", settings=settings, backing_fs="btrfs")
        prompts.confirm.side_effect = [True]
        assert BtrfsDriver().prompt_config(context) == {
            "source": str(settings.var_path / "storage-pools" / "default")
        }

    def test_subvolume_declined(self, host, prompts, settings):
        context = PoolContext(name="default", settings=settings, backing_fs="btrfs")
        prompts.confirm.side_effect = [False, True, False]
        prompts.integer.side_effect = [15]
        assert BtrfsDriver().prompt_config(context) == {"size": "15GB"}

    def test_no_subvolume_offer_elsewhere(self, host, prompts, context):
        prompts.confirm.side_effect = [False]
        prompts.ask.side_effect = ["/dev/sdc"]
        assert BtrfsDriver().prompt_config(context) == {"source": "/dev/sdc"}
        assert prompts.confirm.call_count == 1


class TestLvmDriver:
    def test_thin_provisioning_available(self, host, prompts, context):
        host.find_binary.return_value = "/usr/sbin/thin_check"
        prompts.confirm.side_effect = [False]
        prompts.ask.side_effect = ["vg0"]
        assert LvmDriver().prompt_config(context, console=None) == {"source": "vg0"}

    def test_without_thin_provisioning(self, host, prompts, context, console):
        prompts.confirm.side_effect = [False, True]
        prompts.ask.side_effect = ["vg0"]
        config = LvmDriver().prompt_config(context, console)
        assert config == {"source": "vg0", "lvm.use_thinpool": "false"}
        console.print.assert_called()

    def test_thin_provisioning_refused(self, host, prompts, context, console):
        prompts.confirm.side_effect = [False, False]
        prompts.ask.side_effect = ["vg0"]
        with pytest.raises(ThinProvisioningToolsMissingException):
            LvmDriver().prompt_config(context, console)


class TestCephDriver:
    def test_new_pool(self, prompts, context):
        prompts.confirm.side_effect = [True]
        prompts.ask.side_effect = ["ceph", "lxd"]
        prompts.integer.side_effect = [32]
        assert CephDriver().prompt_config(context) == {
            "ceph.cluster_name": "ceph",
            "ceph.osd.pool_name": "lxd",
            "ceph.osd.pg_num": "32",
        }

    def test_existing_pool(self, prompts, context):
        prompts.confirm.side_effect = [False]
        prompts.ask.side_effect = ["ceph", "rbd"]
        config = CephDriver().prompt_config(context)
        assert config == {
            "ceph.cluster_name": "ceph",
            "source": "rbd",
            "ceph.osd.pool_name": "rbd",
        }
        CephDriver().validate_config(config)
