"""Result models returned by the jobs and rendered by the CLI."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from runner_ami.core import constants
from runner_ami.core.models.network import (
    NetworkingInfo,
    SecurityGroupInfo,
    SubnetInfo,
    VpcInfo,
)
from runner_ami.core.models.resources import (
    EnsureResult,
    InstanceProfileInfo,
    RoleInfo,
)

SEPARATOR = "-" * 40


def render_secrets(secrets: Dict[str, str]) -> List[str]:
    lines = [SEPARATOR]
    lines.extend(f"{key}: {value}" for key, value in secrets.items())
    lines.append(SEPARATOR)
    return lines


@dataclass
class SetupSummary:
    """Everything the one-time account setup produced."""
    account_id: str
    repository: str
    workflow_role_arn: str
    networking: NetworkingInfo
    resources: List[EnsureResult] = field(default_factory=list)

    @property
    def created(self) -> List[EnsureResult]:
        return [r for r in self.resources if r.created]

    @property
    def secrets(self) -> Dict[str, str]:
        """GitHub repository secrets consumed by the AMI build workflow."""
        return {
            constants.SECRET_ROLE_ARN: self.workflow_role_arn,
            constants.SECRET_SECURITY_GROUP_ID: self.networking.security_group_id,
            constants.SECRET_SUBNET_ID: self.networking.subnet_id,
        }

    def render(self) -> str:
        lines = ["", "🎉 Setup Complete!", "Add these secrets to your GitHub repository:"]
        lines.extend(render_secrets(self.secrets))
        lines.extend(
            [
                "",
                "Next steps:",
                "1. Add the above secrets to GitHub repository settings",
                "2. Test the AMI build workflow",
                "3. Monitor CloudWatch logs for any issues",
            ]
        )
        return "\n".join(lines)


@dataclass
class ValidationReport:
    """Existence checks for the resources picked for the build workflow."""
    checks: Dict[str, Optional[bool]] = field(default_factory=dict)

    def add(self, label: str, exists: Optional[bool]) -> None:
        # None means the value was not provided and the check was skipped
        self.checks[label] = exists

    @property
    def all_valid(self) -> bool:
        return all(v for v in self.checks.values() if v is not None)

    def render(self) -> str:
        lines = ["", "Validating resources..."]
        for label, exists in self.checks.items():
            if exists is None:
                lines.append(f"⚠️  {label} not provided, skipped")
            elif exists:
                lines.append(f"✅ {label} exists")
            else:
                lines.append(f"❌ {label} not found")
        return "\n".join(lines)


@dataclass
class InventoryReport:
    """Snapshot of the account resources relevant to runner AMI builds."""
    identity: Dict[str, Any]
    region: str
    ssm_roles: List[RoleInfo] = field(default_factory=list)
    instance_profiles: List[InstanceProfileInfo] = field(default_factory=list)
    vpcs: List[VpcInfo] = field(default_factory=list)
    security_groups: List[SecurityGroupInfo] = field(default_factory=list)
    subnets: List[SubnetInfo] = field(default_factory=list)
    ssm_resources: List[EnsureResult] = field(default_factory=list)
    ssm_instance_profile: str = ""
    selections: Dict[str, str] = field(default_factory=dict)
    validation: ValidationReport = field(default_factory=ValidationReport)

    @property
    def secrets(self) -> Dict[str, str]:
        return {
            constants.SECRET_SECURITY_GROUP_ID: self.selections.get("security_group_id", ""),
            constants.SECRET_SUBNET_ID: self.selections.get("subnet_id", ""),
            constants.SECRET_SSM_INSTANCE_PROFILE: self.ssm_instance_profile,
        }

    def report_rows(self) -> Dict[str, List[Dict[str, Any]]]:
        """Inventory as CSV-ready rows, keyed by report name."""
        return {
            "vpcs": [
                {"VpcId": v.vpc_id, "Name": v.name, "CidrBlock": v.cidr_block, "IsDefault": v.is_default}
                for v in self.vpcs
            ],
            "subnets": [
                {
                    "SubnetId": s.subnet_id,
                    "VpcId": s.vpc_id,
                    "AvailabilityZone": s.availability_zone,
                    "CidrBlock": s.cidr_block,
                    "Name": s.name,
                }
                for s in self.subnets
            ],
            "security_groups": [
                {"GroupName": g.group_name, "GroupId": g.group_id, "VpcId": g.vpc_id}
                for g in self.security_groups
            ],
            "ssm_roles": [{"RoleName": r.name, "Arn": r.arn} for r in self.ssm_roles],
        }
