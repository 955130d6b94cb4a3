"""
Tests for the click CLI wiring.
"""
import io
import logging
import sys

import boto3
import pytest
import yaml
from click.testing import CliRunner
from rich.console import Console
from moto import mock_aws

from runner_ami import cli as cli_module
from runner_ami.cli import cli, make_table
from runner_ami.utils.config import ConfigManager
from runner_ami.utils.logger import set_log_level, setup_logger

from conftest import ACCOUNT_ID


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, config_manager, args, **kwargs):
    return runner.invoke(cli, args, obj={"config": config_manager}, **kwargs)


def test_version(runner, config_manager):
    result = invoke(runner, config_manager, ["version"])

    assert result.exit_code == 0
    assert "Runner AMI 1.0.0" in result.output


@mock_aws
def test_setup_aws_prints_secrets(runner, config_manager):
    result = invoke(runner, config_manager, ["setup-aws", "--region", "us-east-1"])

    assert result.exit_code == 0, result.output
    assert "Setting up AWS resources for GitHub Actions..." in result.output
    assert f"AWS_ROLE_ARN: arn:aws:iam::{ACCOUNT_ID}:role/GitHubActionsWorkflowRole" in result.output
    assert "EC2_SECURITY_GROUP_ID: sg-" in result.output
    assert "EC2_SUBNET_ID: subnet-" in result.output


@mock_aws
def test_get_resources_without_prompts(runner, config_manager):
    result = invoke(runner, config_manager, ["get-resources", "--no-input"])

    assert result.exit_code == 0, result.output
    assert "=== VPCs ===" in result.output
    vpc_id = boto3.client("ec2", region_name="us-east-1").describe_vpcs()["Vpcs"][0]["VpcId"]
    assert vpc_id in result.output
    assert "VpcId" in result.output and "CidrBlock" in result.output
    assert "✅ Created role GitHubActionsRunnerSSMRole" in result.output
    assert "SSM_INSTANCE_PROFILE: GitHubActionsRunnerSSMProfile" in result.output


@mock_aws
def test_get_resources_prompts_for_selections(runner, config_manager):
    result = invoke(runner, config_manager, ["get-resources"], input="my-key\n\n\n")

    assert result.exit_code == 0, result.output
    assert "❌ Key pair 'my-key' not found" in result.output


@mock_aws
def test_get_resources_export_uses_report_path(runner, tmp_path, settings):
    settings["report"] = {"path": str(tmp_path / "results")}
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    (config_dir / "settings.yaml").write_text(yaml.safe_dump(settings))

    result = invoke(runner, ConfigManager(config_dir=config_dir), ["get-resources", "--no-input", "--export"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "results" / "us-east-1_vpcs.csv").exists()


def test_build_ami_dry_run(runner, config_manager, tmp_path):
    template = tmp_path / "ubuntu.pkr.hcl"
    template.write_text("")

    result = invoke(runner, config_manager, ["build-ami", "--template", str(template), "--dry-run"])

    assert result.exit_code == 0, result.output
    assert f"[DRY RUN] packer init {template.resolve()}" in result.output
    assert "[DRY RUN] packer build -var region=us-east-1" in result.output


def test_job_errors_exit_with_status_1(runner, config_manager, tmp_path):
    result = invoke(
        runner, config_manager, ["build-ami", "--template", str(tmp_path / "nope.hcl"), "--dry-run"]
    )

    assert result.exit_code == 1
    assert "Error in build_ami: Packer template not found" in result.output


def test_configure_environment_asks_for_confirmation(runner, config_manager, tmp_path):
    result = invoke(
        runner, config_manager, ["configure-environment", "--root", str(tmp_path)], input="n\n"
    )

    assert result.exit_code == 0
    assert "Operation cancelled by user." in result.output
    assert not (tmp_path / "etc").exists()


def test_unknown_option_exits_with_status_1(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["runner-ami", "setup-aws", "--bogus"])

    with pytest.raises(SystemExit) as exc:
        cli_module.main()

    assert exc.value.code == 1


def test_help_exits_cleanly(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["runner-ami", "setup-aws", "--help"])

    with pytest.raises(SystemExit) as exc:
        cli_module.main()

    assert exc.value.code == 0


def test_make_table_renders_rows_with_rich():
    table = make_table(
        "Subnets",
        ["SubnetId", "AvailabilityZone", "Name"],
        [["subnet-0123456789abcdef0", "us-east-1a", None]],
    )
    buffer = io.StringIO()
    Console(file=buffer, width=120).print(table)

    rendered = buffer.getvalue()
    assert "Subnets" in rendered
    assert "SubnetId" in rendered and "AvailabilityZone" in rendered
    assert "subnet-0123456789abcdef0" in rendered
    assert "None" not in rendered


@mock_aws
def test_empty_inventory_section_says_none(runner, config_manager):
    result = invoke(runner, config_manager, ["get-resources", "--no-input"])

    assert "=== IAM Roles with SSM Access ===\n(none)" in result.output


@pytest.fixture
def reset_log_level():
    yield
    set_log_level("INFO")
    set_log_level(None)


def test_verbose_reaches_job_and_manager_loggers(runner, config_manager, reset_log_level):
    existing = setup_logger("runner_ami.core.aws.iam", level="INFO")

    result = invoke(runner, config_manager, ["--verbose", "version"])

    assert result.exit_code == 0
    assert existing.level == logging.DEBUG
    # Loggers created after the flag, with their own configured level, follow it too
    later = setup_logger("runner_ami.jobs.example_after_verbose", level="INFO")
    assert later.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in later.handlers)


def test_console_logs_go_to_stderr(capsys, tmp_path):
    logger = setup_logger("runner_ami.tests.console_stream", "stream.log", log_dir=str(tmp_path))

    logger.info("configuring swap")

    captured = capsys.readouterr()
    assert "configuring swap" in captured.err
    assert captured.out == ""
    assert "configuring swap" in (tmp_path / "stream.log").read_text()
