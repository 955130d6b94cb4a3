"""
Tests for the EC2 manager: default networking, security groups and validation.
"""
import pytest

from runner_ami.core.aws import EC2Manager
from runner_ami.core.models import ResourceKind

from conftest import REGION


@pytest.mark.infrastructure
def test_default_vpc_and_subnet(aws):
    ec2 = EC2Manager(aws, REGION)

    vpc_id = ec2.get_default_vpc_id()
    subnet_id = ec2.get_default_subnet_id(vpc_id)

    assert vpc_id and vpc_id.startswith("vpc-")
    subnet = aws.client("ec2").describe_subnets(SubnetIds=[subnet_id])["Subnets"][0]
    assert subnet["VpcId"] == vpc_id
    assert subnet["DefaultForAz"] is True


@pytest.mark.infrastructure
def test_default_subnet_missing_for_custom_vpc(aws):
    client = aws.client("ec2")
    vpc_id = client.create_vpc(CidrBlock="10.10.0.0/16")["Vpc"]["VpcId"]

    assert EC2Manager(aws, REGION).get_default_subnet_id(vpc_id) is None


@pytest.mark.infrastructure
def test_security_group_created_then_reused(aws):
    ec2 = EC2Manager(aws, REGION)
    vpc_id = ec2.get_default_vpc_id()

    created = ec2.ensure_security_group("github-actions-runner", "runners", vpc_id)
    reused = ec2.ensure_security_group("github-actions-runner", "runners", vpc_id)

    assert created.kind is ResourceKind.SECURITY_GROUP
    assert created.created and not reused.created
    assert created.identifier == reused.identifier
    assert created.identifier.startswith("sg-")
    group = aws.client("ec2").describe_security_groups(GroupIds=[created.identifier])[
        "SecurityGroups"
    ][0]
    assert {"Key": "Name", "Value": "github-actions-runner"} in group["Tags"]


@pytest.mark.infrastructure
def test_inventory_flattens_name_tags(aws):
    client = aws.client("ec2")
    vpc_id = client.create_vpc(
        CidrBlock="10.20.0.0/16",
        TagSpecifications=[{"ResourceType": "vpc", "Tags": [{"Key": "Name", "Value": "builders"}]}],
    )["Vpc"]["VpcId"]
    client.create_subnet(VpcId=vpc_id, CidrBlock="10.20.1.0/24", AvailabilityZone="us-east-1a")

    ec2 = EC2Manager(aws, REGION)
    vpcs = {v.vpc_id: v for v in ec2.describe_vpcs()}
    subnets = [s for s in ec2.describe_subnets() if s.vpc_id == vpc_id]
    groups = [g for g in ec2.describe_security_groups() if g.vpc_id == vpc_id]

    assert vpcs[vpc_id].name == "builders"
    assert vpcs[vpc_id].row == [vpc_id, "builders", "10.20.0.0/16"]
    assert any(v.is_default for v in vpcs.values())
    assert [s.cidr_block for s in subnets] == ["10.20.1.0/24"]
    assert subnets[0].row[-1] == "None"
    assert [g.group_name for g in groups] == ["default"]


@pytest.mark.infrastructure
def test_existence_checks(aws):
    client = aws.client("ec2")
    client.create_key_pair(KeyName="builder")
    ec2 = EC2Manager(aws, REGION)
    vpc_id = ec2.get_default_vpc_id()
    group_id = ec2.ensure_security_group("github-actions-runner", "runners", vpc_id).identifier
    subnet_id = ec2.get_default_subnet_id(vpc_id)

    assert ec2.key_pair_exists("builder") is True
    assert ec2.key_pair_exists("missing") is False
    assert ec2.security_group_exists(group_id) is True
    assert ec2.security_group_exists("sg-0123456789abcdef0") is False
    assert ec2.subnet_exists(subnet_id) is True
    assert ec2.subnet_exists("subnet-0123456789abcdef0") is False
