#!/usr/bin/env python3
"""Run the Packer template that builds the runner AMI."""

import datetime
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional
from .base import BaseJob
from runner_ami.core import constants
from runner_ami.core.models import PackerVariables
from runner_ami.utils.commands import CommandRunner
from runner_ami.utils.exceptions import CLIError, ValidationRules

# Setup outputs are handed to the build workflow as repository secrets
SECRET_ENV_VARIABLES = {
    "subnet_id": constants.SECRET_SUBNET_ID,
    "security_group_id": constants.SECRET_SECURITY_GROUP_ID,
    "iam_instance_profile": constants.SECRET_SSM_INSTANCE_PROFILE,
}


class BuildAMIJob(BaseJob):
    """Job to build the runner AMI with Packer"""

    def __init__(self, config_manager=None, runner: Optional[CommandRunner] = None, **kwargs):
        super().__init__(config_manager, job_name="build_ami", **kwargs)
        self.packer_config: Dict[str, Any] = self.config_manager.get_packer_config()
        self.runner = runner or CommandRunner()

    def resolve_variables(self, **overrides: Any) -> PackerVariables:
        """Template variables: settings, then secret env vars, then CLI overrides."""
        variables = PackerVariables.from_config(
            self.region, self.packer_config.get("variables", {})
        )
        from_env = {
            field: os.environ.get(env_name)
            for field, env_name in SECRET_ENV_VARIABLES.items()
        }
        if not variables.iam_instance_profile and not from_env["iam_instance_profile"]:
            from_env["iam_instance_profile"] = self.config_manager.get_resource_names()[
                "ssm_instance_profile"
            ]

        tags = {
            "BuildDate": datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%d"),
            **(self.packer_config.get("tags") or {}),
        }
        return variables.merged(**from_env).merged(tags=tags, **overrides)

    def build_commands(self, template: str, variables: PackerVariables) -> List[List[str]]:
        return [
            ["packer", "init", template],
            ["packer", "build", *variables.to_var_args(), template],
        ]

    def execute(
        self,
        template: Optional[str] = None,
        dry_run: bool = False,
        **overrides: Any,
    ) -> Dict[str, Any]:
        """Validate inputs, then run ``packer init`` and ``packer build``."""
        template = template or self.packer_config.get("template")
        if not template:
            raise CLIError("No Packer template given; use --template or packer.template")
        if not Path(template).exists():
            raise CLIError(f"Packer template not found: {template}")
        # Absolute, since Packer runs from the template directory
        template_path = Path(template).resolve()

        variables = self.resolve_variables(**overrides)
        self.validate(variables)
        commands = self.build_commands(str(template_path), variables)

        if dry_run:
            for command in commands:
                self.log(f"[DRY RUN] Would run: {' '.join(command)}")
            return {"status": "dry_run", "commands": commands, "variables": variables.to_dict()}

        if shutil.which("packer") is None:
            raise CLIError("packer executable not found on PATH")

        cwd = str(template_path.parent)
        for command in commands:
            self.runner.stream(command, cwd=cwd)

        self.log(f"Packer build finished for {variables.ami_name_prefix or template}")
        return {"status": "success", "commands": commands, "variables": variables.to_dict()}

    def validate(self, variables: PackerVariables) -> None:
        problems = []
        if not ValidationRules.validate_region(variables.region):
            problems.append(f"invalid region '{variables.region}'")
        if variables.subnet_id and not ValidationRules.validate_subnet_id(variables.subnet_id):
            problems.append(f"invalid subnet id '{variables.subnet_id}'")
        if variables.security_group_id and not ValidationRules.validate_security_group_id(
            variables.security_group_id
        ):
            problems.append(f"invalid security group id '{variables.security_group_id}'")
        if variables.ami_name_prefix and not ValidationRules.validate_ami_name_prefix(
            variables.ami_name_prefix
        ):
            problems.append(f"invalid AMI name prefix '{variables.ami_name_prefix}'")
        if variables.spot_price:
            try:
                float(variables.spot_price)
            except ValueError:
                if variables.spot_price != "auto":
                    problems.append(f"invalid spot price '{variables.spot_price}'")
        if problems:
            raise CLIError("Invalid Packer variables: " + "; ".join(problems))
