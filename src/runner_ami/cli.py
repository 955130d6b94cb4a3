#!/usr/bin/env python3
"""
Runner AMI - CLI
Prepare AWS accounts and builder hosts for self-hosted GitHub Actions runner AMIs
"""

import click
import sys
from typing import List, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from runner_ami import __version__
from runner_ami.core.models import InventoryReport
from runner_ami.core.models.reports import render_secrets
from runner_ami.utils.config import ConfigManager
from runner_ami.utils.decorators import job_operation
from runner_ami.utils.logger import set_log_level, setup_logger

console = Console()


def setup_logging(verbose: bool = False):
    level = "DEBUG" if verbose else "INFO"
    if verbose:
        # Job and manager loggers follow the CLI verbosity
        set_log_level(level)
    return setup_logger("runner_ami_cli", "cli.log", level)


# Common CLI options
def add_aws_options(func):
    func = click.option(
        "--region", help="AWS region (default: AWS_REGION or settings, then us-east-1)"
    )(func)
    func = click.option(
        "--profile", help="AWS CLI profile (default: AWS_PROFILE or settings, then default)"
    )(func)
    return func


def make_table(title: str, columns: Sequence[str], rows: List[Sequence[str]]) -> Table:
    table = Table(title=title, box=box.ASCII, title_justify="left")
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*["" if cell is None else str(cell) for cell in row])
    return table


def print_table(title: str, columns: Sequence[str], rows: List[Sequence[str]]) -> None:
    click.echo(f"\n=== {title} ===")
    if not rows:
        click.echo("(none)")
        return
    console.print(make_table(title, columns, rows))


def print_inventory(report: InventoryReport, **options):
    """Print the account inventory as tables, then the secrets and validation results."""
    identity = report.identity
    print_table(
        "AWS Account Info",
        ["Account", "Arn", "UserId"],
        [[identity["Account"], identity["Arn"], identity["UserId"]]],
    )
    print_table("IAM Roles with SSM Access", ["RoleName", "Arn"], [[r.name, r.arn] for r in report.ssm_roles])
    print_table(
        "SSM Instance Profiles",
        ["InstanceProfileName", "Arn"],
        [[p.name, p.arn] for p in report.instance_profiles],
    )
    print_table("VPCs", ["VpcId", "Name", "CidrBlock"], [v.row for v in report.vpcs])
    print_table("Security Groups", ["GroupName", "GroupId", "VpcId"], [g.row for g in report.security_groups])
    print_table(
        "Subnets",
        ["SubnetId", "VpcId", "AvailabilityZone", "CidrBlock", "Name"],
        [s.row for s in report.subnets],
    )

    click.echo("\n=== Checking SSM Role Setup ===")
    for result in report.ssm_resources:
        click.echo(result.status_line)

    click.echo("\nAdd these secrets to GitHub:")
    click.echo("\n".join(render_secrets(report.secrets)))
    click.echo(report.validation.render())


def print_build_result(result, **options):
    for command in result["commands"]:
        prefix = "[DRY RUN] " if result["status"] == "dry_run" else ""
        click.echo(f"{prefix}{' '.join(command)}")


@click.group()
@click.option("--profile", help="AWS CLI profile")
@click.option("--region", help="AWS region")
@click.option("--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, profile, region, verbose):
    """Runner AMI - GitHub Actions runner image tooling for AWS"""
    ctx.ensure_object(dict)
    setup_logging(verbose)

    ctx.obj["profile"] = profile
    ctx.obj["region"] = region
    ctx.obj["verbose"] = verbose
    ctx.obj.setdefault("config", ConfigManager())


@cli.command()
@add_aws_options
@click.option("--repository", help="owner/name of the GitHub repository (default: git remote)")
@click.pass_context
@job_operation()
def setup_aws(ctx, **kwargs):
    """Set up the AWS resources for GitHub Actions AMI building

    Creates the GitHub OIDC provider, the workflow role and policy, the SSM
    instance role and profile, and the runner security group, then prints the
    repository secrets the build workflow needs.
    """
    click.echo("Setting up AWS resources for GitHub Actions...")


@cli.command()
@add_aws_options
@click.option("--key-name", help="EC2 key pair name to validate")
@click.option("--security-group-id", help="Security group ID for the build workflow")
@click.option("--subnet-id", help="Subnet ID for the build workflow")
@click.option("--output-dir", type=click.Path(file_okay=False), help="Also write CSV reports here")
@click.option("--export", is_flag=True, help="Write CSV reports to report.path (unless --output-dir)")
@click.option("--no-input", is_flag=True, help="Do not prompt for missing selections")
@click.pass_context
@job_operation(output_handler=print_inventory)
def get_resources(ctx, **kwargs):
    """List IAM/VPC resources, ensure the SSM role and validate selections"""
    no_input = kwargs.pop("no_input", False)
    if kwargs.pop("export", False) and not kwargs.get("output_dir"):
        kwargs["output_dir"] = ctx.obj["config"].get_report_path()
    prompts = [
        ("key_name", "Key Pair name"),
        ("security_group_id", "Security Group ID (recommended: the 'github-actions-runner' group)"),
        ("subnet_id", "Subnet ID (preferably in AZ 'a')"),
    ]
    for key, text in prompts:
        if not kwargs.get(key) and not no_input:
            kwargs[key] = click.prompt(text, default="", show_default=False) or None
    return kwargs


@cli.command()
@click.option("--root", default="/", type=click.Path(file_okay=False), help="Filesystem root to configure")
@click.option("--image-version", help="Image version (default: IMAGE_VERSION)")
@click.option("--image-os", help="Image OS (default: IMAGE_OS)")
@click.option("--helper-scripts", help="Directory holding invoke-tests.sh (default: HELPER_SCRIPTS)")
@click.option("--disable-ipv6/--keep-ipv6", default=None, help="Disable IPv6 via sysctl")
@click.option("--aws-default-region", help="AWS_DEFAULT_REGION written to /etc/environment")
@click.option("--force", is_flag=True, help="Skip confirmation prompts")
@click.pass_context
@job_operation(
    requires_confirmation=True,
    confirmation_message="This modifies system files under the given root. Continue?",
)
def configure_environment(ctx, **kwargs):
    """Configure the builder host environment (run on the instance, as root)"""
    return kwargs


@cli.command()
@add_aws_options
@click.option("--template", type=click.Path(dir_okay=False), help="Packer template (default: packer.template)")
@click.option("--instance-type", help="Builder instance type")
@click.option("--spot-price", help="Max spot price, or 'auto'")
@click.option("--ami-name-prefix", help="Prefix for the resulting AMI name")
@click.option("--subnet-id", help="Subnet ID (default: EC2_SUBNET_ID)")
@click.option("--security-group-id", help="Security group ID (default: EC2_SECURITY_GROUP_ID)")
@click.option("--dry-run", is_flag=True, help="Print the Packer commands without running them")
@click.pass_context
@job_operation(output_handler=print_build_result)
def build_ami(ctx, **kwargs):
    """Build the runner AMI with Packer"""
    return kwargs


@cli.command()
def version():
    """Show version information"""
    click.echo(f"Runner AMI {__version__}")
    click.echo("GitHub Actions runner image tooling for AWS")


def main():
    """Console entry point; usage errors exit with status 1."""
    try:
        rv = cli.main(standalone_mode=False)
    except click.UsageError as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    sys.exit(rv if isinstance(rv, int) else 0)


if __name__ == "__main__":
    main()
