"""EC2 Manager for the networking side of runner AMI builds."""

from typing import Any, Dict, List, Optional
import boto3
from botocore.exceptions import ClientError
from runner_ami.core.models import (
    EnsureResult,
    ResourceKind,
    SecurityGroupInfo,
    SubnetInfo,
    VpcInfo,
)
from runner_ami.utils.ec2_utils import build_filters, format_tags
from runner_ami.utils.exceptions import ResourceSetupError
from runner_ami.utils.logger import setup_logger


class EC2Manager:
    """Simple AWS EC2 resource manager."""

    def __init__(self, session: boto3.Session, region: str = "us-east-1"):
        """Initialize EC2Manager."""
        self.session = session
        self.region = region
        self.ec2_client = session.client("ec2", region_name=region)
        self.logger = setup_logger(__name__, "ec2_manager.log")

    def _paginate(self, operation: str, key: str, **params) -> List[Dict[str, Any]]:
        paginator = self.ec2_client.get_paginator(operation)
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate(**params):
            items.extend(page.get(key, []))
        return items

    def get_default_vpc_id(self) -> Optional[str]:
        """Return the region's default VPC ID, or None when there is none."""
        vpcs = self.ec2_client.describe_vpcs(
            Filters=build_filters(is_default="true")
        )["Vpcs"]
        return vpcs[0]["VpcId"] if vpcs else None

    def get_default_subnet_id(self, vpc_id: str) -> Optional[str]:
        """Return the first default-for-AZ subnet of ``vpc_id``."""
        subnets = self.ec2_client.describe_subnets(
            Filters=build_filters(vpc_id=vpc_id, default_for_az="true")
        )["Subnets"]
        if not subnets:
            return None
        subnets.sort(key=lambda s: s.get("AvailabilityZone", ""))
        return subnets[0]["SubnetId"]

    def find_security_group(self, group_name: str, vpc_id: Optional[str] = None) -> Optional[str]:
        groups = self.ec2_client.describe_security_groups(
            Filters=build_filters(group_name=group_name, vpc_id=vpc_id)
        )["SecurityGroups"]
        return groups[0]["GroupId"] if groups else None

    def ensure_security_group(
        self, group_name: str, description: str, vpc_id: str
    ) -> EnsureResult:
        """Reuse the security group named ``group_name`` in ``vpc_id`` or create it."""
        label = f"Security group {group_name}"
        try:
            group_id = self.find_security_group(group_name, vpc_id)
        except ClientError as e:
            raise ResourceSetupError(label, f"lookup failed: {e}") from e

        if group_id:
            self.logger.info(f"✅ Using existing security group: {group_id}")
            return EnsureResult(ResourceKind.SECURITY_GROUP, group_name, group_id)

        self.logger.info("Creating security group...")
        try:
            response = self.ec2_client.create_security_group(
                GroupName=group_name,
                Description=description,
                VpcId=vpc_id,
                TagSpecifications=[
                    {
                        "ResourceType": "security-group",
                        "Tags": format_tags({"Name": group_name}),
                    }
                ],
            )
        except ClientError as e:
            raise ResourceSetupError(label, f"creation failed: {e}") from e
        group_id = response["GroupId"]
        self.logger.info(f"✅ Created security group: {group_id}")
        return EnsureResult(ResourceKind.SECURITY_GROUP, group_name, group_id, created=True)

    def describe_vpcs(self) -> List[VpcInfo]:
        return [VpcInfo.from_aws_vpc(v) for v in self._paginate("describe_vpcs", "Vpcs")]

    def describe_security_groups(self) -> List[SecurityGroupInfo]:
        return [
            SecurityGroupInfo.from_aws_group(g)
            for g in self._paginate("describe_security_groups", "SecurityGroups")
        ]

    def describe_subnets(self) -> List[SubnetInfo]:
        return [
            SubnetInfo.from_aws_subnet(s)
            for s in self._paginate("describe_subnets", "Subnets")
        ]

    def _check(self, resource: str, call, **params) -> bool:
        try:
            call(**params)
            return True
        except ClientError as e:
            self.logger.debug(f"{resource} lookup failed: {e}")
            return False

    def key_pair_exists(self, key_name: str) -> bool:
        return self._check(
            f"Key pair {key_name}", self.ec2_client.describe_key_pairs, KeyNames=[key_name]
        )

    def security_group_exists(self, group_id: str) -> bool:
        return self._check(
            f"Security group {group_id}",
            self.ec2_client.describe_security_groups,
            GroupIds=[group_id],
        )

    def subnet_exists(self, subnet_id: str) -> bool:
        return self._check(
            f"Subnet {subnet_id}", self.ec2_client.describe_subnets, SubnetIds=[subnet_id]
        )

