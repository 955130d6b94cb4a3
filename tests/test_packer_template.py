"""
Tests for the shipped Packer template and its provisioning scripts.
"""
import re
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEMPLATE = PROJECT_ROOT / "images" / "ubuntu" / "templates" / "ubuntu-22.04-aws.pkr.hcl"


@pytest.fixture(scope="module")
def template_text():
    return TEMPLATE.read_text(encoding="utf-8")


def local_paths(text):
    """Local files the template uploads or executes, resolved like Packer does."""
    project_root = re.search(r'project_root\s*=\s*"([^"]+)"', text).group(1)
    text = text.replace("${local.project_root}", project_root)
    return [
        (TEMPLATE.parent / rel.replace("${path.root}/", "")).resolve()
        for rel in re.findall(r'"(\$\{path\.root\}/[^"]+)"', text)
    ]


def test_every_uploaded_or_executed_path_exists(template_text):
    paths = local_paths(template_text)

    assert paths
    missing = [str(p) for p in paths if not p.exists()]
    assert missing == []


def test_project_is_uploaded_before_it_is_installed(template_text):
    paths = local_paths(template_text)

    assert PROJECT_ROOT / "pyproject.toml" in paths
    assert PROJECT_ROOT / "src" in paths
    upload = template_text.index('destination = "${local.runner_ami_src}/"')
    install = template_text.index("pip3 install ${local.runner_ami_src}")
    configure = template_text.index("runner-ami configure-environment")
    assert upload < install < configure
    assert "pip3 install runner-ami-ops" not in template_text


def test_smoke_test_covers_installed_tools(template_text):
    invoke = re.search(r'"invoke_tests ([^"]+)"', template_text).group(1).split()

    assert {"docker", "git", "dotnet"} <= set(invoke)
    scripts = {p.name for p in local_paths(template_text)}
    assert {"install-docker.sh", "install-git.sh", "install-dotnetcore-sdk.sh"} <= scripts


def test_tools_install_after_environment_is_configured(template_text):
    configure = template_text.index("runner-ami configure-environment")
    docker = template_text.index("install-docker.sh")
    smoke = template_text.index("invoke_tests")
    assert configure < docker < smoke
