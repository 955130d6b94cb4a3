#!/usr/bin/env python3
"""One-time AWS setup for building runner AMIs from GitHub Actions.

Creates (or reuses) the GitHub OIDC provider, the workflow role and policy
assumed by the build workflow, the SSM role and instance profile attached to
builder instances, and the security group they are launched with.
"""

from typing import List, Optional, Tuple
from .base import BaseJob
from runner_ami.core import constants, policies
from runner_ami.core.aws import EC2Manager, IAMManager
from runner_ami.core.models import EnsureResult, NetworkingInfo, SetupSummary
from runner_ami.core.processors import StepProcessor
from runner_ami.utils.exceptions import CLIError, ValidationRules
from runner_ami.utils.git import resolve_repository
from runner_ami.utils.session import get_account_id


class SetupAWSJob(BaseJob):
    """Job to set up the IAM, OIDC and networking prerequisites"""

    def __init__(self, config_manager=None, **kwargs):
        super().__init__(config_manager, job_name="setup_aws", **kwargs)
        self.names = self.config_manager.get_resource_names()
        self.github = self.config_manager.get_github_config()
        self.resources: List[EnsureResult] = []

    def execute(self, repository: Optional[str] = None, **kwargs) -> SetupSummary:
        """Run every setup step in order; the first failure aborts the run."""
        self.log("Setting up AWS resources for GitHub Actions...")
        self.log(f"Profile: {self.profile} | Region: {self.region}")

        self.iam = IAMManager(self.session)
        self.ec2 = EC2Manager(self.session, self.region)

        account_id = get_account_id(self.session)
        if not ValidationRules.validate_aws_account_id(account_id):
            raise CLIError(f"Unexpected AWS account id from STS: {account_id!r}")
        owner, repo = resolve_repository(
            repository or self.config_manager.get_repository()
        )
        self.log(f"Account ID: {account_id}")
        self.log(f"Repository: {owner}/{repo}")

        processor = StepProcessor(name=f"{self.job_name}_processor")
        result = processor.run_steps(
            [
                ("GitHub OIDC Provider", lambda: self.setup_oidc_provider(account_id)),
                (
                    "GitHub Actions Workflow Role",
                    lambda: self.setup_workflow_role(account_id, owner, repo),
                ),
                ("SSM Instance Role", self.setup_ssm_role),
                ("Networking Resources", self.get_networking_resources),
            ],
            operation_name=self.job_name,
            correlation_id=self.correlation_id,
        )

        return SetupSummary(
            account_id=account_id,
            repository=f"{owner}/{repo}",
            workflow_role_arn=result.results["GitHub Actions Workflow Role"],
            networking=result.results["Networking Resources"],
            resources=list(self.resources),
        )

    def _track(self, result: EnsureResult) -> EnsureResult:
        self.resources.append(result)
        return result

    def setup_oidc_provider(self, account_id: str) -> EnsureResult:
        return self._track(
            self.iam.ensure_oidc_provider(
                account_id,
                url=self.github["oidc_url"],
                audience=self.github["audience"],
                thumbprint=self.github["thumbprint"],
            )
        )

    def setup_workflow_role(self, account_id: str, owner: str, repo: str) -> str:
        """Ensure the workflow role and its policy; returns the role ARN."""
        role_name = self.names["workflow_role"]
        policy_name = self.names["workflow_policy"]
        host = self.github["oidc_url"].split("://", 1)[-1].rstrip("/")

        role = self._track(
            self.iam.ensure_role(
                role_name,
                policies.github_trust_policy(
                    account_id, owner, repo, host=host, audience=self.github["audience"]
                ),
                description=constants.WORKFLOW_ROLE_DESCRIPTION,
            )
        )
        policy = self._track(
            self.iam.ensure_policy(
                account_id,
                policy_name,
                policies.workflow_permissions_policy(account_id, self.names["ssm_role"]),
                description=constants.WORKFLOW_POLICY_DESCRIPTION,
            )
        )
        self.iam.attach_role_policy(role_name, policy.identifier)
        return role.identifier

    def setup_ssm_role(self) -> Tuple[EnsureResult, EnsureResult]:
        role_name = self.names["ssm_role"]
        role = self._track(
            self.iam.ensure_role(
                role_name,
                policies.ec2_trust_policy(),
                description=constants.SSM_ROLE_DESCRIPTION,
            )
        )
        if role.created:
            self.iam.attach_role_policy(role_name, constants.SSM_MANAGED_POLICY_ARN)

        profile = self._track(
            self.iam.ensure_instance_profile(self.names["ssm_instance_profile"], role_name)
        )
        return role, profile

    def get_networking_resources(self) -> NetworkingInfo:
        vpc_id = self.ec2.get_default_vpc_id()
        if not vpc_id:
            raise CLIError(
                "No default VPC found. Please ensure you have a default VPC "
                "or specify resources manually."
            )

        subnet_id = self.ec2.get_default_subnet_id(vpc_id)
        if not subnet_id:
            raise CLIError(f"No default subnet found in VPC {vpc_id}")

        group = self._track(
            self.ec2.ensure_security_group(
                self.names["security_group"],
                constants.SECURITY_GROUP_DESCRIPTION,
                vpc_id,
            )
        )

        self.log(f"✅ VPC: {vpc_id}")
        self.log(f"✅ Subnet: {subnet_id}")
        self.log(f"✅ Security Group: {group.identifier}")

        return NetworkingInfo(
            vpc_id=vpc_id,
            subnet_id=subnet_id,
            security_group_id=group.identifier,
            security_group_created=group.created,
        )
