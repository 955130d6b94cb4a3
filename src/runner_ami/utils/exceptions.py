"""Exception classes and validation utilities for runner AMI operations.

This module contains common exception classes and validation rules
used across the toolkit.
"""

import re


class CLIError(Exception):
    """Custom exception for CLI-related errors."""

    pass


class ResourceSetupError(Exception):
    """Raised when an AWS resource cannot be looked up or created."""

    def __init__(self, resource: str, message: str):
        self.resource = resource
        super().__init__(f"{resource}: {message}")


class CommandError(Exception):
    """Raised when an external command (git, packer, systemctl...) fails."""

    def __init__(self, command, returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(
            f"Command '{' '.join(self.command)}' exited with {returncode}{detail}"
        )


class ValidationRules:
    """Validation utilities for AWS resources."""

    @staticmethod
    def validate_aws_account_id(account_id: str) -> bool:
        """Validate AWS account ID format (12 digits)."""
        return bool(re.match(r"^\d{12}$", account_id))

    @staticmethod
    def validate_region(region: str) -> bool:
        """Validate AWS region format (e.g. us-east-1, ap-southeast-2)."""
        return bool(re.match(r"^[a-z]{2}(-gov)?-[a-z]+-\d$", region or ""))

    @staticmethod
    def validate_security_group_id(group_id: str) -> bool:
        return bool(re.match(r"^sg-[0-9a-f]{8}([0-9a-f]{9})?$", group_id or ""))

    @staticmethod
    def validate_subnet_id(subnet_id: str) -> bool:
        return bool(re.match(r"^subnet-[0-9a-f]{8}([0-9a-f]{9})?$", subnet_id or ""))

    @staticmethod
    def validate_ami_name_prefix(prefix: str) -> bool:
        """AMI names allow letters, numbers and ()[]./-'@_ up to 128 chars."""
        return bool(re.match(r"^[A-Za-z0-9()\[\] ./\-'@_]{3,100}$", prefix or ""))
