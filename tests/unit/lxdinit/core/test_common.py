# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

from unittest.mock import MagicMock, Mock

import click
import pytest
import yaml

from lxdinit.core.common import (
    BaseStep,
    Result,
    ResultType,
    bool_to_str,
    get_step_message,
    run_plan,
    str_presenter,
    validate_address_setting_v4,
    validate_address_setting_v6,
    validate_cidr_v4,
    validate_cidr_v6,
    validate_ip_address,
    validate_network_name,
)


class FakeStep(BaseStep):
    def __init__(self, skip=ResultType.COMPLETED, result=ResultType.COMPLETED):
        super().__init__("Fake", "Faking")
        self.skip = skip
        self.result = result
        self.prompted = False
        self.ran = False

    def has_prompts(self) -> bool:
        return True

    def prompt(self, console=None, show_hint=False) -> None:
        self.prompted = True

    def is_skip(self, status=None):
        return Result(self.skip, "skip message")

    def run(self, status=None):
        self.ran = True
        return Result(self.result, "run message")


class TestRunPlan:
    def test_prompts_and_runs_steps(self):
        step = FakeStep()
        results = run_plan([step], MagicMock())
        assert step.prompted
        assert step.ran
        assert get_step_message(results, FakeStep) == "run message"

    def test_skipped_step_does_not_run(self):
        step = FakeStep(skip=ResultType.SKIPPED)
        results = run_plan([step], MagicMock())
        assert not step.ran
        assert results["FakeStep"].result_type == ResultType.SKIPPED

    def test_failed_step_raises(self):
        with pytest.raises(click.ClickException, match="run message"):
            run_plan([FakeStep(result=ResultType.FAILED)], MagicMock())

    def test_failed_skip_check_raises(self):
        step = FakeStep(skip=ResultType.FAILED)
        with pytest.raises(click.ClickException, match="skip message"):
            run_plan([step], MagicMock())
        assert not step.ran

    def test_no_raise_stops_plan(self):
        first = FakeStep(result=ResultType.FAILED)
        second = FakeStep()
        results = run_plan([first, second], MagicMock(), no_raise=True)
        assert results["FakeStep"].result_type == ResultType.FAILED
        assert not second.ran

    def test_missing_step_message(self):
        assert get_step_message({}, FakeStep) is None


def test_str_presenter_uses_literal_block_for_multiline():
    dumper = Mock()
    str_presenter(dumper, "line1\nline2")
    dumper.represent_scalar.assert_called_once_with(
        "tag:yaml.org,2002:str", "line1\nline2", style="|"
    )


def test_str_presenter_plain_string():
    class Dumper(yaml.SafeDumper):
        pass

    Dumper.add_representer(str, str_presenter)
    assert yaml.dump("plain", Dumper=Dumper).startswith("plain")


def test_bool_to_str():
    assert bool_to_str(True) == "true"
    assert bool_to_str(False) == "false"


class TestValidateNetworkName:
    @pytest.mark.parametrize("name", ["lxdbr0", "br-ex", "BR0", "ab", "a" * 15])
    def test_valid(self, name):
        validate_network_name(name)

    @pytest.mark.parametrize(
        "name",
        [
            "",
            "a",
            "..",
            "a" * 16,
            "br 0",
            "br/0",
            "br:0",
            "br,0",
            "br_0",
            "br.0",
            "é0",
        ],
    )
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            validate_network_name(name)


class TestValidateAddresses:
    def test_cidr_v4(self):
        validate_cidr_v4("10.0.0.1/24")

    @pytest.mark.parametrize("value", ["10.0.0.1", "10.0.0.1/33", "fd42::1/64", "x"])
    def test_cidr_v4_invalid(self, value):
        with pytest.raises(ValueError):
            validate_cidr_v4(value)

    def test_cidr_v6(self):
        validate_cidr_v6("fd42:1234::1/64")

    @pytest.mark.parametrize("value", ["fd42::1", "10.0.0.1/24", "fd42::1/129"])
    def test_cidr_v6_invalid(self, value):
        with pytest.raises(ValueError):
            validate_cidr_v6(value)

    @pytest.mark.parametrize("value", ["auto", "none", "10.0.0.0/24"])
    def test_address_setting_v4(self, value):
        validate_address_setting_v4(value)

    @pytest.mark.parametrize("value", ["auto", "none", "fd42::1/64"])
    def test_address_setting_v6(self, value):
        validate_address_setting_v6(value)

    def test_address_setting_rejects_other_family(self):
        with pytest.raises(ValueError):
            validate_address_setting_v4("fd42::1/64")
        with pytest.raises(ValueError):
            validate_address_setting_v6("10.0.0.0/24")

    def test_ip_address(self):
        validate_ip_address("192.168.1.1")
        validate_ip_address("::1")
        with pytest.raises(ValueError):
            validate_ip_address("all")
