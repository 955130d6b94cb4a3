"""Simple data models for runner AMI resources."""

# IAM models
from .resources import (
    EnsureResult,
    InstanceProfileInfo,
    ResourceKind,
    RoleInfo,
)

# Networking models
from .network import (
    NetworkingInfo,
    SecurityGroupInfo,
    SubnetInfo,
    VpcInfo,
)

# Job results
from .reports import (
    InventoryReport,
    SetupSummary,
    ValidationReport,
)

# Packer
from .packer import PackerVariables

__all__ = [
    # IAM models
    "EnsureResult",
    "InstanceProfileInfo",
    "ResourceKind",
    "RoleInfo",
    # Networking models
    "NetworkingInfo",
    "SecurityGroupInfo",
    "SubnetInfo",
    "VpcInfo",
    # Job results
    "InventoryReport",
    "SetupSummary",
    "ValidationReport",
    # Packer
    "PackerVariables",
]
