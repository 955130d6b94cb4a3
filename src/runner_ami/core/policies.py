"""IAM policy documents for GitHub Actions AMI builds.

All builders are pure functions returning plain dictionaries; the IAM
manager serializes them with ``json.dumps`` when calling AWS.
"""

from typing import Any, Dict, List

from runner_ami.core import constants

PolicyDocument = Dict[str, Any]

# Everything Packer's amazon-ebs builder (including spot fleets) needs.
WORKFLOW_EC2_ACTIONS: List[str] = [
    "ec2:RunInstances",
    "ec2:TerminateInstances",
    "ec2:CreateTags",
    "ec2:DescribeInstances",
    "ec2:DescribeImages",
    "ec2:DescribeVolumes",
    "ec2:CreateImage",
    "ec2:DescribeSecurityGroups",
    "ec2:DescribeSubnets",
    "ec2:DescribeVpcs",
    "ec2:DescribeRegions",
    "ec2:DescribeAvailabilityZones",
    "ec2:DescribeKeyPairs",
    "ec2:CreateKeyPair",
    "ec2:DeleteKeyPair",
    "ec2:ModifyImageAttribute",
    "ec2:DescribeInstanceAttribute",
    "ec2:ModifyInstanceAttribute",
    "ec2:DescribeInstanceTypeOfferings",
    "ec2:CreateSecurityGroup",
    "ec2:DeleteSecurityGroup",
    "ec2:AuthorizeSecurityGroupIngress",
    "ec2:AuthorizeSecurityGroupEgress",
    "ec2:RevokeSecurityGroupIngress",
    "ec2:RevokeSecurityGroupEgress",
    "ec2:CreateLaunchTemplate",
    "ec2:DeleteLaunchTemplate",
    "ec2:DescribeLaunchTemplates",
    "ec2:CreateFleet",
    "ec2:DescribeFleets",
    "ec2:DescribeSpotFleetInstances",
    "ec2:DescribeSpotFleetRequests",
    "ec2:RequestSpotFleet",
    "ec2:CancelSpotFleetRequests",
    "ec2:DescribeSpotInstanceRequests",
    "ec2:RequestSpotInstances",
    "ec2:CancelSpotInstanceRequests",
    "iam:PassRole",
    "ec2:DeregisterImage",
    "ec2:CopyImage",
]

RUNNER_ACTIONS: List[str] = [
    "ssm:UpdateInstanceInformation",
    "ssmmessages:CreateControlChannel",
    "ssmmessages:CreateDataChannel",
    "ssmmessages:OpenControlChannel",
    "ssmmessages:OpenDataChannel",
    "ec2messages:AcknowledgeMessage",
    "ec2messages:DeleteMessage",
    "ec2messages:FailMessage",
    "ec2messages:GetEndpoint",
    "ec2messages:GetMessages",
    "ec2messages:SendReply",
    "cloudwatch:PutMetricData",
    "ec2:DescribeInstances",
    "ds:CreateComputer",
    "ds:DescribeDirectories",
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:DescribeLogGroups",
    "logs:DescribeLogStreams",
    "logs:PutLogEvents",
]


def oidc_provider_arn(account_id: str, host: str = constants.GITHUB_OIDC_HOST) -> str:
    return f"arn:aws:iam::{account_id}:oidc-provider/{host}"


def role_arn(account_id: str, role_name: str) -> str:
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def policy_arn(account_id: str, policy_name: str) -> str:
    return f"arn:aws:iam::{account_id}:policy/{policy_name}"


def github_trust_policy(
    account_id: str,
    owner: str,
    repo: str,
    host: str = constants.GITHUB_OIDC_HOST,
    audience: str = constants.GITHUB_OIDC_AUDIENCE,
) -> PolicyDocument:
    """Trust policy letting any workflow of ``owner/repo`` assume the role."""
    return {
        "Version": constants.POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Federated": oidc_provider_arn(account_id, host)},
                "Action": "sts:AssumeRoleWithWebIdentity",
                "Condition": {
                    "StringLike": {f"{host}:sub": f"repo:{owner}/{repo}:*"},
                    "StringEquals": {f"{host}:aud": audience},
                },
            }
        ],
    }


def workflow_permissions_policy(
    account_id: str, ssm_role_name: str = constants.SSM_ROLE_NAME
) -> PolicyDocument:
    """Permissions for the workflow role: EC2 image building plus passing the SSM role."""
    return {
        "Version": constants.POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": list(WORKFLOW_EC2_ACTIONS),
                "Resource": "*",
            },
            {
                "Effect": "Allow",
                "Action": "iam:PassRole",
                "Resource": role_arn(account_id, ssm_role_name),
                "Condition": {
                    "StringEquals": {
                        "iam:PassedToService": constants.EC2_SERVICE_PRINCIPAL
                    }
                },
            },
        ],
    }


def ec2_trust_policy() -> PolicyDocument:
    return {
        "Version": constants.POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": {"Service": constants.EC2_SERVICE_PRINCIPAL},
                "Action": "sts:AssumeRole",
            }
        ],
    }


def runner_permissions_policy() -> PolicyDocument:
    """SSM session, CloudWatch metrics and logs access for runner instances."""
    return {
        "Version": constants.POLICY_VERSION,
        "Statement": [
            {
                "Effect": "Allow",
                "Action": list(RUNNER_ACTIONS),
                "Resource": "*",
            }
        ],
    }
