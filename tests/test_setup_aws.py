"""
Tests for the one-time AWS setup job.
"""
import pytest

from runner_ami.core import constants
from runner_ami.jobs.setup_aws import SetupAWSJob
from runner_ami.utils.exceptions import CLIError

from conftest import ACCOUNT_ID, REGION, REPOSITORY


def make_job(config_manager, session):
    return SetupAWSJob(config_manager, region=REGION, session=session)


@pytest.mark.infrastructure
def test_setup_creates_everything_and_reports_secrets(config_manager, aws):
    summary = make_job(config_manager, aws).execute()

    assert summary.account_id == ACCOUNT_ID
    assert summary.repository == REPOSITORY
    secrets = summary.secrets
    assert list(secrets) == ["AWS_ROLE_ARN", "EC2_SECURITY_GROUP_ID", "EC2_SUBNET_ID"]
    assert secrets["AWS_ROLE_ARN"] == f"arn:aws:iam::{ACCOUNT_ID}:role/GitHubActionsWorkflowRole"
    assert secrets["EC2_SECURITY_GROUP_ID"].startswith("sg-")
    assert secrets["EC2_SUBNET_ID"].startswith("subnet-")
    assert {r.name for r in summary.created} == {
        "token.actions.githubusercontent.com",
        "GitHubActionsWorkflowRole",
        "GitHubActionsWorkflowPolicy",
        "GitHubActionsRunnerSSMRole",
        "GitHubActionsRunnerSSMProfile",
        "github-actions-runner",
    }

    iam = aws.client("iam")
    workflow_policies = iam.list_attached_role_policies(RoleName="GitHubActionsWorkflowRole")
    assert [p["PolicyName"] for p in workflow_policies["AttachedPolicies"]] == [
        "GitHubActionsWorkflowPolicy"
    ]
    ssm_policies = iam.list_attached_role_policies(RoleName="GitHubActionsRunnerSSMRole")
    assert [p["PolicyArn"] for p in ssm_policies["AttachedPolicies"]] == [
        constants.SSM_MANAGED_POLICY_ARN
    ]


@pytest.mark.infrastructure
def test_setup_is_idempotent(config_manager, aws):
    first = make_job(config_manager, aws).execute()
    second = make_job(config_manager, aws).execute()

    assert second.created == []
    assert second.secrets == first.secrets
    groups = aws.client("ec2").describe_security_groups(
        Filters=[{"Name": "group-name", "Values": ["github-actions-runner"]}]
    )["SecurityGroups"]
    assert len(groups) == 1


@pytest.mark.infrastructure
def test_existing_ssm_role_is_left_alone(config_manager, aws):
    aws.client("iam").create_role(
        RoleName="GitHubActionsRunnerSSMRole",
        AssumeRolePolicyDocument='{"Version": "2012-10-17", "Statement": []}',
    )

    make_job(config_manager, aws).execute()

    attached = aws.client("iam").list_attached_role_policies(RoleName="GitHubActionsRunnerSSMRole")
    assert attached["AttachedPolicies"] == []


@pytest.mark.infrastructure
def test_missing_default_vpc_aborts_after_iam_steps(config_manager, aws, monkeypatch):
    monkeypatch.setattr(
        "runner_ami.core.aws.ec2.EC2Manager.get_default_vpc_id", lambda self: None
    )

    with pytest.raises(CLIError, match="No default VPC found"):
        make_job(config_manager, aws).execute()

    # Earlier steps already ran
    aws.client("iam").get_role(RoleName="GitHubActionsWorkflowRole")
    aws.client("iam").get_instance_profile(InstanceProfileName="GitHubActionsRunnerSSMProfile")


@pytest.mark.infrastructure
def test_repository_argument_overrides_settings(config_manager, aws):
    summary = make_job(config_manager, aws).execute(repository="other-org/images")

    assert summary.repository == "other-org/images"
    role = aws.client("iam").get_role(RoleName="GitHubActionsWorkflowRole")["Role"]
    assert "repo:other-org/images:*" in str(role["AssumeRolePolicyDocument"])


def test_summary_render_lists_secrets_and_next_steps(config_manager, aws):
    summary = make_job(config_manager, aws).execute()
    text = summary.render()

    assert "🎉 Setup Complete!" in text
    assert f"AWS_ROLE_ARN: arn:aws:iam::{ACCOUNT_ID}:role/GitHubActionsWorkflowRole" in text
    assert "Next steps:" in text


@pytest.mark.infrastructure
def test_malformed_account_id_aborts_before_any_resource(config_manager, aws, monkeypatch):
    monkeypatch.setattr("runner_ami.jobs.setup_aws.get_account_id", lambda session: "not-an-account")

    with pytest.raises(CLIError, match="Unexpected AWS account id"):
        make_job(config_manager, aws).execute()

    assert aws.client("iam").list_open_id_connect_providers()["OpenIDConnectProviderList"] == []
