"""Data models for IAM resources managed by the setup jobs."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union
from urllib.parse import unquote


class ResourceKind(Enum):
    """Kinds of resources the ensure operations handle."""
    OIDC_PROVIDER = "oidc-provider"
    ROLE = "role"
    POLICY = "policy"
    INSTANCE_PROFILE = "instance-profile"
    SECURITY_GROUP = "security-group"


@dataclass
class EnsureResult:
    """Outcome of an "ensure resource exists" operation."""
    kind: ResourceKind
    name: str
    identifier: str
    created: bool = False

    @property
    def status_line(self) -> str:
        label = self.kind.value.replace("-", " ")
        if self.created:
            return f"✅ Created {label} {self.name}"
        return f"✅ {label.capitalize()} {self.name} exists"


def _policy_text(document: Union[str, Dict[str, Any], None]) -> str:
    if document is None:
        return ""
    if isinstance(document, dict):
        return json.dumps(document)
    return unquote(str(document))


@dataclass
class RoleInfo:
    """Simple IAM role information model."""
    name: str
    arn: str
    trust_policy: str = ""

    def trusts(self, principal: str) -> bool:
        return principal in self.trust_policy

    @classmethod
    def from_aws_role(cls, role: Dict[str, Any]) -> "RoleInfo":
        return cls(
            name=role["RoleName"],
            arn=role["Arn"],
            trust_policy=_policy_text(role.get("AssumeRolePolicyDocument")),
        )


@dataclass
class InstanceProfileInfo:
    """Simple IAM instance profile information model."""
    name: str
    arn: str

    @classmethod
    def from_aws_profile(cls, profile: Dict[str, Any]) -> "InstanceProfileInfo":
        return cls(name=profile["InstanceProfileName"], arn=profile["Arn"])
