#!/usr/bin/env python3
"""
utils/session.py

Session management utilities for AWS interactions.

Provides helpers to build profile-based boto3 sessions and to confirm that
the credentials behind them are usable before any resource is touched.
"""

import boto3
import os
from typing import Any, Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound
from runner_ami.core import constants
from .exceptions import CLIError
from .logger import setup_logger

logger = setup_logger(__name__, "session.log")


class SessionManager:
    """Manages AWS sessions for profile and environment credentials."""

    @classmethod
    def get_session(
        cls, profile: Optional[str] = None, region: str = constants.DEFAULT_AWS_REGION
    ) -> boto3.Session:
        """Create a boto3 Session for a named AWS CLI profile.

        Passing ``None`` (or the default profile name) falls back to the
        standard credential chain.
        """
        try:
            if profile and profile != constants.DEFAULT_AWS_PROFILE:
                return boto3.Session(profile_name=profile, region_name=region)
            return boto3.Session(region_name=region)
        except ProfileNotFound as e:
            raise CLIError(f"AWS profile '{profile}' not found: {e}")

    @classmethod
    def get_session_from_env(
        cls, region: str = constants.DEFAULT_AWS_REGION
    ) -> boto3.Session:
        """Create a boto3 Session from environment variables.

        Expected environment variables:
        - AWS_ACCESS_KEY_ID
        - AWS_SECRET_ACCESS_KEY
        - AWS_SESSION_TOKEN (optional, set by OIDC role assumption)
        """
        access_key = os.getenv("AWS_ACCESS_KEY_ID")
        secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")
        session_token = os.getenv("AWS_SESSION_TOKEN")

        if not access_key or not secret_key:
            raise CLIError(
                "Missing required environment variables. "
                "Please set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY."
            )

        return boto3.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            aws_session_token=session_token,
            region_name=region,
        )

    @classmethod
    def for_profile(cls, profile: Optional[str], region: str) -> boto3.Session:
        """Session for ``profile``; environment credentials win when no profile was chosen.

        GitHub Actions exports the assumed role's keys, so the default
        profile resolves to them there.
        """
        if (not profile or profile == constants.DEFAULT_AWS_PROFILE) and os.getenv(
            "AWS_ACCESS_KEY_ID"
        ):
            logger.debug("Using AWS credentials from environment variables")
            return cls.get_session_from_env(region)
        return cls.get_session(profile, region)


def get_caller_identity(session: boto3.Session) -> Dict[str, Any]:
    """Return the STS caller identity (Account, Arn, UserId)."""
    response = session.client("sts").get_caller_identity()
    return {
        "Account": response["Account"],
        "Arn": response["Arn"],
        "UserId": response["UserId"],
    }


def get_account_id(session: boto3.Session) -> str:
    """Return the AWS account ID behind the session."""
    return get_caller_identity(session)["Account"]


def verify_session(session: boto3.Session, profile: Optional[str] = None) -> Dict[str, Any]:
    """Make sure the session has working credentials.

    Raises:
        CLIError: With an SSO login hint when the identity call fails.
    """
    try:
        identity = get_caller_identity(session)
    except (ClientError, BotoCoreError) as e:
        profile = profile or session.profile_name
        raise CLIError(
            f"Unable to call STS with profile '{profile}': {e}. "
            f"Please login to AWS SSO first using: aws sso login --profile {profile}"
        )
    logger.debug(f"Session verified for {identity['Arn']}")
    return identity
