#!/usr/bin/env python3
"""Inventory of account resources used to fill in the build workflow secrets."""

from pathlib import Path
from typing import Dict, List, Optional
from .base import BaseJob
from runner_ami.core import constants, policies
from runner_ami.core.aws import EC2Manager, IAMManager
from runner_ami.core.models import EnsureResult, InventoryReport, ValidationReport
from runner_ami.core.processors import CSVReportGenerator
from runner_ami.utils.session import verify_session


class GetResourcesJob(BaseJob):
    """Job to list IAM/VPC resources, ensure the SSM role and validate selections"""

    def __init__(self, config_manager=None, **kwargs):
        super().__init__(config_manager, job_name="get_resources", **kwargs)
        self.names = self.config_manager.get_resource_names()

    def execute(
        self,
        key_name: Optional[str] = None,
        security_group_id: Optional[str] = None,
        subnet_id: Optional[str] = None,
        output_dir: Optional[str] = None,
        **kwargs,
    ) -> InventoryReport:
        """Collect the inventory, ensure the SSM role and check the selections.

        Validation failures are reported, never raised.
        """
        self.log(f"Using AWS Profile: {self.profile}")
        self.log(f"Using AWS Region: {self.region}")

        identity = verify_session(self.session, self.profile)
        iam = IAMManager(self.session)
        ec2 = EC2Manager(self.session, self.region)

        self.log("Checking for roles with SSM managed policies...")
        report = InventoryReport(
            identity=identity,
            region=self.region,
            ssm_roles=iam.list_ssm_roles(),
            instance_profiles=iam.list_ssm_instance_profiles(),
            vpcs=ec2.describe_vpcs(),
            security_groups=ec2.describe_security_groups(),
            subnets=ec2.describe_subnets(),
        )

        self.log("=== Checking SSM Role Setup ===")
        report.ssm_resources = self.check_and_create_ssm_role(
            iam, identity["Account"]
        )
        report.ssm_instance_profile = self.names["ssm_instance_profile"]

        report.selections = {
            k: v
            for k, v in {
                "key_name": key_name,
                "security_group_id": security_group_id,
                "subnet_id": subnet_id,
            }.items()
            if v
        }
        report.validation = self.validate_selections(
            ec2, key_name, security_group_id, subnet_id
        )

        if output_dir:
            self.export_reports(report, output_dir)

        return report

    def check_and_create_ssm_role(self, iam: IAMManager, account_id: str) -> List[EnsureResult]:
        """Ensure the runner SSM role; a freshly created role gets the runner policy too."""
        role_name = self.names["ssm_role"]
        ensured = []

        role = iam.ensure_role(role_name, policies.ec2_trust_policy())
        ensured.append(role)
        if role.created:
            runner_policy = iam.ensure_policy(
                account_id,
                self.names["runner_policy"],
                policies.runner_permissions_policy(),
            )
            ensured.append(runner_policy)
            iam.attach_role_policy(role_name, constants.SSM_MANAGED_POLICY_ARN)
            iam.attach_role_policy(role_name, runner_policy.identifier)

        ensured.append(
            iam.ensure_instance_profile(self.names["ssm_instance_profile"], role_name)
        )
        return ensured

    def validate_selections(
        self,
        ec2: EC2Manager,
        key_name: Optional[str],
        security_group_id: Optional[str],
        subnet_id: Optional[str],
    ) -> ValidationReport:
        validation = ValidationReport()
        checks = [
            ("Key pair", key_name, ec2.key_pair_exists),
            ("Security group", security_group_id, ec2.security_group_exists),
            ("Subnet", subnet_id, ec2.subnet_exists),
        ]
        for label, value, exists in checks:
            if value:
                validation.add(f"{label} '{value}'", exists(value))
            else:
                validation.add(label, None)
        for label, exists in validation.checks.items():
            if exists is False:
                self.log(f"{label} not found", level="warning")
        return validation

    def export_reports(self, report: InventoryReport, output_dir: str) -> Dict[str, Path]:
        generator = CSVReportGenerator(output_dir)
        written = {}
        for name, rows in report.report_rows().items():
            path = generator.generate_report(rows, f"{self.region}_{name}")
            if path:
                written[name] = path
        return written
