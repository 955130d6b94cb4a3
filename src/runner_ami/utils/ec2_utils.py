#!/usr/bin/env python3
"""
EC2 utility functions for runner AMI operations.

Shared helpers for turning boto3 EC2 responses into plain Python values.
"""

from typing import Dict, List, Optional


def get_resource_tags(resource: Dict) -> Dict[str, str]:
    """
    Extract tags from an EC2 resource description as a key-value dictionary.

    Args:
        resource: VPC, subnet, security group or instance dictionary

    Returns:
        Dictionary of tag keys and values

    Example:
        tags = get_resource_tags(vpc)
        name = tags.get('Name', '')
    """
    tags = {}
    for tag in resource.get("Tags", []) or []:
        key = tag.get("Key")
        if key:
            tags[key] = tag.get("Value", "")
    return tags


def get_name_tag(resource: Dict, default: str = "") -> str:
    """Return the Name tag of an EC2 resource, or ``default``."""
    return get_resource_tags(resource).get("Name", default)


def build_filters(**criteria: Optional[str]) -> List[Dict]:
    """
    Build an EC2 ``Filters`` list from keyword arguments.

    Underscores in keys become dashes and ``None`` values are skipped.

    Example:
        build_filters(vpc_id='vpc-123', default_for_az='true')
        # [{'Name': 'vpc-id', 'Values': ['vpc-123']},
        #  {'Name': 'default-for-az', 'Values': ['true']}]
    """
    filters = []
    for key, value in criteria.items():
        if value is None:
            continue
        filters.append({"Name": key.replace("_", "-"), "Values": [str(value)]})
    return filters


def format_tags(tags: Dict[str, str]) -> List[Dict[str, str]]:
    """Convert a tag dictionary to the boto3 ``[{'Key':..., 'Value':...}]`` shape."""
    return [{"Key": k, "Value": str(v)} for k, v in tags.items()]
