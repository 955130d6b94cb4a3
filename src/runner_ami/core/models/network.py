"""Simple data models for VPC networking resources."""

from dataclasses import dataclass
from typing import Any, Dict, List

from runner_ami.utils.ec2_utils import get_name_tag


@dataclass
class VpcInfo:
    vpc_id: str
    name: str = ""
    cidr_block: str = ""
    is_default: bool = False

    @property
    def row(self) -> List[str]:
        return [self.vpc_id, self.name or "None", self.cidr_block]

    @classmethod
    def from_aws_vpc(cls, vpc: Dict[str, Any]) -> "VpcInfo":
        return cls(
            vpc_id=vpc["VpcId"],
            name=get_name_tag(vpc),
            cidr_block=vpc.get("CidrBlock", ""),
            is_default=bool(vpc.get("IsDefault", False)),
        )


@dataclass
class SubnetInfo:
    subnet_id: str
    vpc_id: str
    availability_zone: str = ""
    cidr_block: str = ""
    name: str = ""
    default_for_az: bool = False

    @property
    def row(self) -> List[str]:
        return [
            self.subnet_id,
            self.vpc_id,
            self.availability_zone,
            self.cidr_block,
            self.name or "None",
        ]

    @classmethod
    def from_aws_subnet(cls, subnet: Dict[str, Any]) -> "SubnetInfo":
        return cls(
            subnet_id=subnet["SubnetId"],
            vpc_id=subnet.get("VpcId", ""),
            availability_zone=subnet.get("AvailabilityZone", ""),
            cidr_block=subnet.get("CidrBlock", ""),
            name=get_name_tag(subnet),
            default_for_az=bool(subnet.get("DefaultForAz", False)),
        )


@dataclass
class SecurityGroupInfo:
    group_id: str
    group_name: str
    vpc_id: str = ""

    @property
    def row(self) -> List[str]:
        return [self.group_name, self.group_id, self.vpc_id]

    @classmethod
    def from_aws_group(cls, group: Dict[str, Any]) -> "SecurityGroupInfo":
        return cls(
            group_id=group["GroupId"],
            group_name=group.get("GroupName", ""),
            vpc_id=group.get("VpcId", ""),
        )


@dataclass
class NetworkingInfo:
    """Networking resources builder instances are launched into."""
    vpc_id: str
    subnet_id: str
    security_group_id: str
    security_group_created: bool = False
