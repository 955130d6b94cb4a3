# utils/__init__.py

from .config import ConfigManager
from .session import SessionManager, get_account_id, verify_session
from .logger import setup_logger
from .git import resolve_repository
from .commands import CommandRunner
from .exceptions import CLIError, CommandError, ResourceSetupError, ValidationRules

__all__ = [
    "ConfigManager",
    "SessionManager",
    "get_account_id",
    "verify_session",
    "setup_logger",
    "resolve_repository",
    "CommandRunner",
    "CLIError",
    "CommandError",
    "ResourceSetupError",
    "ValidationRules",
]
