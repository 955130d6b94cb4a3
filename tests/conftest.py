"""Shared pytest fixtures: mocked AWS, isolated settings and a fake command runner."""
import os
import subprocess
import sys
import tempfile
from pathlib import Path

# Must be set before runner_ami or moto are imported
os.environ.setdefault("LOG_PATH", tempfile.mkdtemp(prefix="runner-ami-logs-"))
os.environ["MOTO_IAM_LOAD_MANAGED_POLICIES"] = "true"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

import boto3
import pytest
import yaml
from moto import mock_aws

from runner_ami.utils.config import ConfigManager
from runner_ami.utils.exceptions import CommandError

ACCOUNT_ID = "123456789012"
REGION = "us-east-1"
REPOSITORY = "octo-org/runner-images"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "AWS_PROFILE",
        "AWS_REGION",
        "IMAGE_VERSION",
        "IMAGE_OS",
        "HELPER_SCRIPTS",
        "DISABLE_IPV6",
        "EC2_SUBNET_ID",
        "EC2_SECURITY_GROUP_ID",
        "SSM_INSTANCE_PROFILE",
        "RUNNER_AMI_CONFIG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings():
    return {
        "aws": {"profile": "default", "region": REGION},
        "github": {"repository": REPOSITORY},
        "packer": {
            "variables": {
                "instance_type": "c6i.xlarge",
                "spot_price": "auto",
                "ami_name_prefix": "github-runner-test",
            },
            "tags": {"Project": "github-actions-runner"},
        },
        "environment": {"aws_default_region": REGION},
    }


@pytest.fixture
def config_manager(tmp_path, settings):
    config_dir = tmp_path / "configs"
    config_dir.mkdir()
    (config_dir / "settings.yaml").write_text(yaml.safe_dump(settings))
    return ConfigManager(config_dir=config_dir)


@pytest.fixture
def aws():
    with mock_aws():
        yield boto3.Session(region_name=REGION)


class FakeRunner:
    """Stands in for CommandRunner; answers by command name and records calls."""

    def __init__(self, responses=None):
        # {"mountpoint": 0, "lsblk": (0, "nvme0n1\n"), ...}
        self.responses = responses or {}
        self.calls = []
        self.streamed = []

    def _response(self, args):
        for key in (" ".join(args[:2]), args[0]):
            if key in self.responses:
                value = self.responses[key]
                return value if isinstance(value, tuple) else (value, "")
        return 0, ""

    def run(self, args, check=True, cwd=None):
        args = [str(a) for a in args]
        self.calls.append(args)
        returncode, stdout = self._response(args)
        if check and returncode != 0:
            raise CommandError(args, returncode, "failed")
        return subprocess.CompletedProcess(args, returncode, stdout, "")

    def stream(self, args, cwd=None):
        self.streamed.append(([str(a) for a in args], cwd))
        return 0

    def commands(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner()
