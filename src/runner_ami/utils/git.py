"""GitHub repository resolution from the local git checkout."""

import re
import subprocess
from typing import Optional, Tuple

from .exceptions import CLIError
from .logger import setup_logger

logger = setup_logger(__name__, "git.log")

_GITHUB_REMOTE = re.compile(r"github\.com[:/]+([^/]+)/([^/]+?)(?:\.git)?/*$")


def get_remote_url(remote: str = "origin", cwd: Optional[str] = None) -> str:
    """Return ``git config --get remote.<remote>.url`` or an empty string."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", f"remote.{remote}.url"],
            capture_output=True,
            text=True,
            cwd=cwd,
            check=False,
        )
    except FileNotFoundError:
        logger.warning("git executable not found")
        return ""
    return result.stdout.strip()


def parse_github_remote(url: str) -> Tuple[str, str]:
    """Split a GitHub remote URL into (owner, name).

    Handles ``git@github.com:owner/name.git``,
    ``https://github.com/owner/name(.git)`` and ``ssh://git@github.com/owner/name``.
    """
    match = _GITHUB_REMOTE.search(url.strip())
    if not match:
        raise CLIError(f"Remote URL is not a GitHub repository: {url!r}")
    return match.group(1), match.group(2)


def resolve_repository(override: str = "", cwd: Optional[str] = None) -> Tuple[str, str]:
    """Resolve the GitHub repository the OIDC trust policy is scoped to.

    Args:
        override: ``owner/name`` from settings; wins over the git remote.
        cwd: Directory of the git checkout.
    """
    if override:
        owner, _, name = override.partition("/")
        if not owner or not name or "/" in name:
            raise CLIError(f"Invalid repository '{override}', expected owner/name")
        return owner, name

    url = get_remote_url(cwd=cwd)
    if not url:
        raise CLIError(
            "Could not determine the GitHub repository: no remote.origin.url. "
            "Set github.repository in settings.yaml."
        )
    return parse_github_remote(url)
