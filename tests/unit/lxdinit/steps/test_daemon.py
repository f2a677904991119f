# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

import pytest

from lxdinit.core.preseed import BootstrapIntent
from lxdinit.steps.daemon import (
    SHARED_ALLOCATION_WARNING,
    PlanDaemonConfigStep,
    https_address,
    needs_shared_allocation,
    validate_bind_address,
)


@pytest.mark.parametrize(
    "address,port,expected",
    [
        ("all", 8443, "[::]:8443"),
        ("10.0.0.5", 8443, "10.0.0.5:8443"),
        ("fd42::5", 9443, "[fd42::5]:9443"),
    ],
)
def test_https_address(address, port, expected):
    assert https_address(address, port) == expected


def test_validate_bind_address():
    validate_bind_address("all")
    validate_bind_address("fd42::5")
    with pytest.raises(ValueError):
        validate_bind_address("lxd.example.com")


class TestNeedsSharedAllocation:
    def test_outside_user_namespace(self, host):
        assert not needs_shared_allocation()

    def test_inside_user_namespace(self, host):
        host.running_in_userns.return_value = True
        assert needs_shared_allocation()

    def test_usable_idmap(self, host):
        host.running_in_userns.return_value = True
        host.default_idmap.return_value = [("u", 100000, 65536)]
        host.idmap_usable.return_value = True
        assert not needs_shared_allocation()


class TestPlanDaemonConfigStep:
    def test_defaults(self, config, settings, console, prompts, host):
        prompts.confirm.side_effect = [False, True]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()
        assert config.config == {}
        assert config.default_profile.config == {}

    def test_network_listener(self, config, settings, console, prompts, host):
        prompts.confirm.side_effect = [True, True]
        prompts.ask.side_effect = ["all", "secret", "secret"]
        prompts.integer.side_effect = [8443]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()

        assert config.config == {
            "core.https_address": "[::]:8443",
            "core.trust_password": "secret",
        }
        _, kwargs = prompts.integer.call_args
        assert kwargs["default"] == settings.default_port

    def test_invalid_listener_answers(self, config, settings, console, prompts, host):
        prompts.confirm.side_effect = [True, True]
        # Mismatched password confirmation is asked again
        prompts.ask.side_effect = ["10.0.0", "10.0.0.5", "secret", "typo", "pw", "pw"]
        prompts.integer.side_effect = [70000, 9443]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()

        assert config.config == {
            "core.https_address": "10.0.0.5:9443",
            "core.trust_password": "pw",
        }
        assert prompts.integer.call_count == 2

    def test_listener_without_password(
        self, config, settings, console, prompts, host
    ):
        prompts.confirm.side_effect = [True, True]
        prompts.ask.side_effect = ["all", "", ""]
        prompts.integer.side_effect = [8443]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()

        assert config.config == {
            "core.https_address": "[::]:8443",
            "core.trust_password": "",
        }

    def test_shared_allocation(self, config, settings, console, prompts, host):
        host.running_in_userns.return_value = True
        prompts.confirm.side_effect = [True, False, False]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()

        console.print.assert_any_call(SHARED_ALLOCATION_WARNING)
        assert config.default_profile.config == {"security.privileged": "true"}
        assert config.config == {"images.auto_update_interval": "0"}

    def test_shared_allocation_declined(
        self, config, settings, console, prompts, host
    ):
        host.running_in_userns.return_value = True
        prompts.confirm.side_effect = [False, False, True]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()
        assert config.default_profile.config == {}

    def test_cluster_member(self, config, settings, console, prompts, host):
        config.cluster = BootstrapIntent(server_name="node1")
        config.config["core.https_address"] = "10.1.1.10:8443"
        prompts.confirm.side_effect = [False]
        step = PlanDaemonConfigStep(config, settings)
        step.prompt(console)
        step.run()

        # The cluster address is kept and no listener is asked for
        assert prompts.confirm.call_count == 1
        assert config.config == {
            "core.https_address": "10.1.1.10:8443",
            "images.auto_update_interval": "0",
        }
