"""AWS core modules."""

from .ec2 import EC2Manager
from .iam import IAMManager

__all__ = [
    "EC2Manager",
    "IAMManager",
]
