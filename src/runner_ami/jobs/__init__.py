"""Runner AMI jobs package."""

from .base import BaseJob
from .setup_aws import SetupAWSJob
from .get_resources import GetResourcesJob
from .configure_environment import ConfigureEnvironmentJob
from .build_ami import BuildAMIJob

__all__ = [
    "BaseJob",
    "SetupAWSJob",
    "GetResourcesJob",
    "ConfigureEnvironmentJob",
    "BuildAMIJob",
]
