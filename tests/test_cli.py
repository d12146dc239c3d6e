"""
Tests for the mu command line.
"""

from unittest.mock import Mock

import boto3
import pytest

from mu_workflows import cli
from mu_workflows.config import Config, Environment, VpcTarget
from mu_workflows.environment import Context
from mu_workflows.stack import StackResult


@pytest.fixture
def ctx(stack_manager, quiet_console):
    config = Config([
        Environment(name="foo"),
        Environment(name="dev", vpc_target=VpcTarget("vpc-1", ("subnet-1",))),
    ])
    return Context(config, stack_manager, quiet_console)


@pytest.fixture
def use_ctx(ctx, monkeypatch):
    monkeypatch.setattr(cli, "build_context", lambda args: ctx)
    return ctx


def test_parse_arguments():
    args = cli.parse_arguments(["--region", "us-west-2", "--timeout", "90", "env", "down", "foo", "--force"])
    assert args.command == "down"
    assert args.name == "foo"
    assert args.force
    assert args.timeout == 90.0
    assert args.region == "us-west-2"


def test_up(use_ctx, stack_manager):
    assert cli.main(["env", "up", "foo"]) == 0
    upserted = [c[0][0] for c in stack_manager.upsert_stack.call_args_list]
    assert upserted == ["mu-vpc-foo", "mu-cluster-foo"]


def test_up_failure_exit_code(use_ctx, stack_manager):
    stack_manager.await_final_status.side_effect = lambda name: StackResult(name, "ROLLBACK_COMPLETE")
    assert cli.main(["env", "up", "foo"]) == 1


def test_unknown_environment(use_ctx, stack_manager):
    assert cli.main(["env", "up", "nope"]) == 1
    assert stack_manager.mock_calls == []


def test_down_forced(use_ctx, stack_manager):
    stack_manager.await_final_status.side_effect = lambda name: StackResult(name, "DELETE_COMPLETE")

    assert cli.main(["env", "down", "foo", "--force"]) == 0
    deleted = [c[0][0] for c in stack_manager.delete_stack.call_args_list]
    assert deleted == ["mu-cluster-foo", "mu-vpc-foo"]


def test_down_declined(use_ctx, stack_manager, monkeypatch):
    prompt = Mock()
    prompt.ask.return_value = False
    monkeypatch.setattr(cli.questionary, "confirm", Mock(return_value=prompt))

    assert cli.main(["env", "down", "dev"]) == 0
    stack_manager.delete_stack.assert_not_called()


def test_down_confirmed_keeps_unmanaged_vpc(use_ctx, stack_manager, monkeypatch):
    prompt = Mock()
    prompt.ask.return_value = True
    monkeypatch.setattr(cli.questionary, "confirm", Mock(return_value=prompt))
    stack_manager.await_final_status.side_effect = lambda name: StackResult(name, "DELETE_COMPLETE")

    assert cli.main(["env", "down", "dev"]) == 0
    stack_manager.delete_stack.assert_called_once_with("mu-cluster-dev")


def test_show_and_list(use_ctx, stack_manager, quiet_console):
    stack_manager.get_stack.return_value = None

    assert cli.main(["env", "show", "foo"]) == 0
    assert cli.main(["env", "list"]) == 0
    assert "mu-cluster-foo" in quiet_console.file.getvalue()


def test_missing_config_file(tmp_path):
    assert cli.main(["--config", str(tmp_path / "mu.yml"), "env", "list"]) == 1


def test_build_context(tmp_path, monkeypatch):
    path = tmp_path / "mu.yml"
    path.write_text("environments:\n  - name: foo\n")
    session = boto3.Session(aws_access_key_id="testing", aws_secret_access_key="testing",
                            region_name="us-east-1")
    monkeypatch.setattr(cli, "get_aws_session", lambda profile, region: session)

    ctx = cli.build_context(cli.parse_arguments(["--config", str(path), "--timeout", "30", "env", "list"]))

    assert [e.name for e in ctx.config.environments] == ["foo"]
    assert ctx.stack_manager.settings.timeout == 30.0
    assert ctx.stack_manager.cancel_event is None
