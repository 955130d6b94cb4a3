"""IAM Manager for GitHub Actions OIDC, roles, policies and instance profiles.

Every ``ensure_*`` method follows the same check-then-create pattern: look
the resource up, create it only when AWS answers ``NoSuchEntity``, and
return an :class:`EnsureResult` describing what happened. Any other AWS
error is raised as :class:`ResourceSetupError`.
"""

import json
from typing import Any, Callable, Dict, List, Optional
import boto3
from botocore.exceptions import ClientError
from runner_ami.core import constants
from runner_ami.core.models import (
    EnsureResult,
    InstanceProfileInfo,
    ResourceKind,
    RoleInfo,
)
from runner_ami.core.policies import oidc_provider_arn, policy_arn
from runner_ami.utils.exceptions import ResourceSetupError
from runner_ami.utils.logger import setup_logger

NOT_FOUND_CODES = {"NoSuchEntity", "NoSuchEntityException"}


def is_not_found(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class IAMManager:
    """AWS IAM resource manager."""

    def __init__(self, session: boto3.Session):
        """Initialize IAMManager."""
        self.session = session
        self.iam_client = session.client("iam")
        self.logger = setup_logger(__name__, "iam_manager.log")

    def _exists(self, resource: str, lookup: Callable[[], Any]) -> bool:
        try:
            lookup()
            return True
        except ClientError as e:
            if is_not_found(e):
                return False
            raise ResourceSetupError(resource, f"lookup failed: {e}") from e

    def _create(self, resource: str, create: Callable[[], Any]) -> Any:
        try:
            return create()
        except ClientError as e:
            raise ResourceSetupError(resource, f"creation failed: {e}") from e

    def ensure_oidc_provider(
        self,
        account_id: str,
        url: str = constants.GITHUB_OIDC_URL,
        audience: str = constants.GITHUB_OIDC_AUDIENCE,
        thumbprint: str = constants.GITHUB_OIDC_THUMBPRINT,
    ) -> EnsureResult:
        """Make sure the GitHub Actions OIDC provider is registered."""
        host = url.split("://", 1)[-1].rstrip("/")
        arn = oidc_provider_arn(account_id, host)
        label = f"OIDC provider {host}"

        if self._exists(
            label,
            lambda: self.iam_client.get_open_id_connect_provider(
                OpenIDConnectProviderArn=arn
            ),
        ):
            self.logger.info("✅ GitHub OIDC provider exists")
            return EnsureResult(ResourceKind.OIDC_PROVIDER, host, arn)

        self.logger.info("Creating GitHub OIDC provider...")
        response = self._create(
            label,
            lambda: self.iam_client.create_open_id_connect_provider(
                Url=url, ClientIDList=[audience], ThumbprintList=[thumbprint]
            ),
        )
        arn = response.get("OpenIDConnectProviderArn", arn)
        self.logger.info("✅ Created GitHub OIDC provider")
        return EnsureResult(ResourceKind.OIDC_PROVIDER, host, arn, created=True)

    def ensure_role(
        self, role_name: str, trust_policy: Dict[str, Any], description: str = ""
    ) -> EnsureResult:
        """Make sure ``role_name`` exists; an existing trust policy is left as is."""
        label = f"Role {role_name}"
        try:
            role = self.iam_client.get_role(RoleName=role_name)["Role"]
            self.logger.info(f"✅ Role {role_name} exists")
            return EnsureResult(ResourceKind.ROLE, role_name, role["Arn"])
        except ClientError as e:
            if not is_not_found(e):
                raise ResourceSetupError(label, f"lookup failed: {e}") from e

        params = {
            "RoleName": role_name,
            "AssumeRolePolicyDocument": json.dumps(trust_policy),
        }
        if description:
            params["Description"] = description
        response = self._create(label, lambda: self.iam_client.create_role(**params))
        self.logger.info(f"✅ Created role {role_name}")
        return EnsureResult(
            ResourceKind.ROLE, role_name, response["Role"]["Arn"], created=True
        )

    def ensure_policy(
        self,
        account_id: str,
        policy_name: str,
        document: Dict[str, Any],
        description: str = "",
    ) -> EnsureResult:
        """Make sure a customer managed policy named ``policy_name`` exists."""
        arn = policy_arn(account_id, policy_name)
        label = f"Policy {policy_name}"

        if self._exists(label, lambda: self.iam_client.get_policy(PolicyArn=arn)):
            self.logger.info(f"✅ Policy {policy_name} exists")
            return EnsureResult(ResourceKind.POLICY, policy_name, arn)

        params = {"PolicyName": policy_name, "PolicyDocument": json.dumps(document)}
        if description:
            params["Description"] = description
        response = self._create(label, lambda: self.iam_client.create_policy(**params))
        self.logger.info(f"✅ Created policy {policy_name}")
        return EnsureResult(
            ResourceKind.POLICY, policy_name, response["Policy"]["Arn"], created=True
        )

    def attach_role_policy(self, role_name: str, policy_arn: str) -> None:
        """Attach a managed policy to a role (a no-op when already attached)."""
        try:
            self.iam_client.attach_role_policy(RoleName=role_name, PolicyArn=policy_arn)
        except ClientError as e:
            raise ResourceSetupError(
                f"Role {role_name}", f"could not attach {policy_arn}: {e}"
            ) from e
        self.logger.debug(f"Attached {policy_arn} to {role_name}")

    def ensure_instance_profile(self, profile_name: str, role_name: str) -> EnsureResult:
        """Make sure the instance profile exists; the role is added on creation only."""
        label = f"Instance profile {profile_name}"
        try:
            profile = self.iam_client.get_instance_profile(
                InstanceProfileName=profile_name
            )["InstanceProfile"]
            self.logger.info(f"✅ Instance profile {profile_name} exists")
            return EnsureResult(ResourceKind.INSTANCE_PROFILE, profile_name, profile["Arn"])
        except ClientError as e:
            if not is_not_found(e):
                raise ResourceSetupError(label, f"lookup failed: {e}") from e

        response = self._create(
            label,
            lambda: self.iam_client.create_instance_profile(
                InstanceProfileName=profile_name
            ),
        )
        self._create(
            label,
            lambda: self.iam_client.add_role_to_instance_profile(
                InstanceProfileName=profile_name, RoleName=role_name
            ),
        )
        self.logger.info(f"✅ Created instance profile {profile_name}")
        return EnsureResult(
            ResourceKind.INSTANCE_PROFILE,
            profile_name,
            response["InstanceProfile"]["Arn"],
            created=True,
        )

    def list_attached_policy_arns(self, role_name: str) -> List[str]:
        paginator = self.iam_client.get_paginator("list_attached_role_policies")
        arns = []
        for page in paginator.paginate(RoleName=role_name):
            arns.extend(p["PolicyArn"] for p in page["AttachedPolicies"])
        return arns

    def list_ssm_roles(self, name_fragment: str = "SSM") -> List[RoleInfo]:
        """Roles EC2 can assume whose name contains ``name_fragment``."""
        roles = []
        paginator = self.iam_client.get_paginator("list_roles")
        for page in paginator.paginate():
            for role in page["Roles"]:
                info = RoleInfo.from_aws_role(role)
                if name_fragment in info.name and info.trusts(
                    constants.EC2_SERVICE_PRINCIPAL
                ):
                    roles.append(info)
        return roles

    def list_ssm_instance_profiles(
        self, name_fragment: str = "SSM"
    ) -> List[InstanceProfileInfo]:
        profiles = []
        paginator = self.iam_client.get_paginator("list_instance_profiles")
        for page in paginator.paginate():
            for profile in page["InstanceProfiles"]:
                if name_fragment in profile["InstanceProfileName"]:
                    profiles.append(InstanceProfileInfo.from_aws_profile(profile))
        return profiles

