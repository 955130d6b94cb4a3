#!/usr/bin/env python3
"""Core constants for runner AMI operations."""

# AWS Service Constants
DEFAULT_AWS_REGION = "us-east-1"
DEFAULT_AWS_PROFILE = "default"

# GitHub Actions OIDC
GITHUB_OIDC_HOST = "token.actions.githubusercontent.com"
GITHUB_OIDC_URL = f"https://{GITHUB_OIDC_HOST}"
GITHUB_OIDC_AUDIENCE = "sts.amazonaws.com"
GITHUB_OIDC_THUMBPRINT = "6938fd4d98bab03faadb97b34396831e3780aea1"

# IAM
POLICY_VERSION = "2012-10-17"
EC2_SERVICE_PRINCIPAL = "ec2.amazonaws.com"
SSM_MANAGED_POLICY_ARN = "arn:aws:iam::aws:policy/AmazonSSMManagedInstanceCore"

WORKFLOW_ROLE_NAME = "GitHubActionsWorkflowRole"
WORKFLOW_POLICY_NAME = "GitHubActionsWorkflowPolicy"
SSM_ROLE_NAME = "GitHubActionsRunnerSSMRole"
SSM_INSTANCE_PROFILE_NAME = "GitHubActionsRunnerSSMProfile"
RUNNER_POLICY_NAME = "GitHubActionsRunnerPolicy"
SECURITY_GROUP_NAME = "github-actions-runner"

DEFAULT_RESOURCE_NAMES = {
    "workflow_role": WORKFLOW_ROLE_NAME,
    "workflow_policy": WORKFLOW_POLICY_NAME,
    "ssm_role": SSM_ROLE_NAME,
    "ssm_instance_profile": SSM_INSTANCE_PROFILE_NAME,
    "runner_policy": RUNNER_POLICY_NAME,
    "security_group": SECURITY_GROUP_NAME,
}

WORKFLOW_ROLE_DESCRIPTION = "GitHub Actions workflow role for AMI building"
WORKFLOW_POLICY_DESCRIPTION = "Permissions for GitHub Actions AMI building"
SSM_ROLE_DESCRIPTION = "SSM role for GitHub Actions runner instances"
SECURITY_GROUP_DESCRIPTION = "Security group for GitHub Actions runner instances"

# GitHub repository secrets emitted after setup
SECRET_ROLE_ARN = "AWS_ROLE_ARN"
SECRET_SECURITY_GROUP_ID = "EC2_SECURITY_GROUP_ID"
SECRET_SUBNET_ID = "EC2_SUBNET_ID"
SECRET_SSM_INSTANCE_PROFILE = "SSM_INSTANCE_PROFILE"

# Builder host
AGENT_TOOLSDIRECTORY = "/opt/hostedtoolcache"
SWAP_FILE_SIZE = "4G"
SWAP_FILE_SIZE_MB = 4096
AWS_DNS_RESOLVER = "169.254.169.253"
FALLBACK_DNS = "8.8.8.8 8.8.4.4"

# Report Format Constants
DEFAULT_REPORT_EXTENSION = ".csv"
