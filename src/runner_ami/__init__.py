"""Tooling for building self-hosted GitHub Actions runner AMIs on AWS."""

__version__ = "1.0.0"
