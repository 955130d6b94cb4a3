"""
Tests for the Packer build job and its variables.
"""
from pathlib import Path

import pytest

from runner_ami.core.models import PackerVariables
from runner_ami.jobs.build_ami import BuildAMIJob
from runner_ami.utils.exceptions import CLIError

from conftest import FakeRunner, REGION


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "ubuntu.pkr.hcl"
    path.write_text('source "amazon-ebs" "ubuntu" {}\n')
    return str(path)


def make_job(config_manager, runner=None):
    return BuildAMIJob(config_manager, runner=runner or FakeRunner(), region=REGION)


def var_values(command):
    return dict(
        command[i + 1].split("=", 1) for i, arg in enumerate(command) if arg == "-var"
    )


def test_packer_variables_render_var_args():
    variables = PackerVariables(
        region="us-east-1", instance_type="c6i.large", tags={"Team": "ci", "Quote": 'a"b'}
    )

    assert variables.to_var_args() == [
        "-var", "region=us-east-1",
        "-var", "instance_type=c6i.large",
        "-var", 'tags={"Team" = "ci", "Quote" = "a\\"b"}',
    ]


def test_packer_variables_merge_skips_empty_values():
    base = PackerVariables(region="us-east-1", subnet_id="subnet-11111111", tags={"A": "1"})
    merged = base.merged(subnet_id=None, spot_price="", instance_type="t3.large", tags={"B": "2"})

    assert merged.subnet_id == "subnet-11111111"
    assert merged.spot_price is None
    assert merged.instance_type == "t3.large"
    assert merged.tags == {"A": "1", "B": "2"}


def test_dry_run_uses_settings_and_defaults(config_manager, template):
    runner = FakeRunner()
    result = make_job(config_manager, runner).execute(template=template, dry_run=True)

    init, build = result["commands"]
    assert result["status"] == "dry_run"
    assert init == ["packer", "init", str(Path(template).resolve())]
    assert build[:2] == ["packer", "build"] and build[-1] == str(Path(template).resolve())
    values = var_values(build)
    assert values["region"] == REGION
    assert values["instance_type"] == "c6i.xlarge"
    assert values["spot_price"] == "auto"
    assert values["ami_name_prefix"] == "github-runner-test"
    assert values["iam_instance_profile"] == "GitHubActionsRunnerSSMProfile"
    assert '"Project" = "github-actions-runner"' in values["tags"]
    assert '"BuildDate"' in values["tags"]
    assert runner.streamed == []


def test_secret_env_vars_feed_networking_and_cli_overrides_win(config_manager, template, monkeypatch):
    monkeypatch.setenv("EC2_SUBNET_ID", "subnet-0123456789abcdef0")
    monkeypatch.setenv("EC2_SECURITY_GROUP_ID", "sg-0123456789abcdef0")

    result = make_job(config_manager).execute(
        template=template, dry_run=True, security_group_id="sg-0fedcba9876543210", instance_type=None
    )

    values = result["variables"]
    assert values["subnet_id"] == "subnet-0123456789abcdef0"
    assert values["security_group_id"] == "sg-0fedcba9876543210"
    assert values["instance_type"] == "c6i.xlarge"


def test_invalid_variables_rejected(config_manager, template):
    with pytest.raises(CLIError, match="invalid subnet id"):
        make_job(config_manager).execute(template=template, dry_run=True, subnet_id="not-a-subnet")
    with pytest.raises(CLIError, match="invalid spot price"):
        make_job(config_manager).execute(template=template, dry_run=True, spot_price="cheap")


def test_missing_template_rejected(config_manager, tmp_path):
    with pytest.raises(CLIError, match="template not found"):
        make_job(config_manager).execute(template=str(tmp_path / "missing.pkr.hcl"))


def test_missing_packer_binary(config_manager, template, monkeypatch):
    monkeypatch.setattr("runner_ami.jobs.build_ami.shutil.which", lambda name: None)

    with pytest.raises(CLIError, match="packer executable not found"):
        make_job(config_manager).execute(template=template)


def test_build_runs_init_then_build(config_manager, template, monkeypatch, tmp_path):
    monkeypatch.setattr("runner_ami.jobs.build_ami.shutil.which", lambda name: "/usr/bin/packer")
    runner = FakeRunner()

    result = make_job(config_manager, runner).execute(template=template)

    assert result["status"] == "success"
    assert [call[0][:2] for call in runner.streamed] == [["packer", "init"], ["packer", "build"]]
    assert all(cwd == str(tmp_path.resolve()) for _, cwd in runner.streamed)


def test_relative_template_resolves_from_packer_working_directory(config_manager, monkeypatch, tmp_path):
    templates = tmp_path / "images" / "ubuntu" / "templates"
    templates.mkdir(parents=True)
    (templates / "ubuntu.pkr.hcl").write_text('source "amazon-ebs" "ubuntu" {}\n')
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("runner_ami.jobs.build_ami.shutil.which", lambda name: "/usr/bin/packer")
    runner = FakeRunner()

    make_job(config_manager, runner).execute(template="images/ubuntu/templates/ubuntu.pkr.hcl")

    assert len(runner.streamed) == 2
    for args, cwd in runner.streamed:
        assert cwd == str(templates.resolve())
        assert (Path(cwd) / args[-1]).is_file()


def test_default_template_from_settings(config_manager, monkeypatch, tmp_path):
    templates = tmp_path / "images" / "ubuntu" / "templates"
    templates.mkdir(parents=True)
    (templates / "ubuntu-22.04-aws.pkr.hcl").write_text("")
    config_manager.config["packer"]["template"] = "images/ubuntu/templates/ubuntu-22.04-aws.pkr.hcl"
    monkeypatch.chdir(tmp_path)

    job = make_job(config_manager)
    result = job.execute(dry_run=True)

    expected = str((templates / "ubuntu-22.04-aws.pkr.hcl").resolve())
    assert result["commands"][0] == ["packer", "init", expected]
