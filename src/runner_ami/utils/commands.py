"""Thin wrapper around ``subprocess`` for privileged host commands."""

import subprocess
from typing import Optional, Sequence

from .exceptions import CommandError
from .logger import setup_logger

logger = setup_logger(__name__, "commands.log")


class CommandRunner:
    """Runs external commands; tests swap in a fake with the same ``run`` signature."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def run(
        self,
        args: Sequence[str],
        check: bool = True,
        cwd: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """Run ``args`` and capture its output.

        Raises:
            CommandError: When ``check`` is set and the command fails or is missing.
        """
        args = [str(a) for a in args]
        logger.debug(f"Running: {' '.join(args)}")
        if self.dry_run:
            logger.info(f"[DRY RUN] {' '.join(args)}")
            return subprocess.CompletedProcess(args, 0, "", "")

        try:
            result = subprocess.run(
                args, capture_output=True, text=True, cwd=cwd, check=False
            )
        except FileNotFoundError as e:
            if check:
                raise CommandError(args, 127, str(e)) from e
            return subprocess.CompletedProcess(args, 127, "", str(e))

        if check and result.returncode != 0:
            raise CommandError(args, result.returncode, result.stderr)
        return result

    def stream(self, args: Sequence[str], cwd: Optional[str] = None) -> int:
        """Run ``args`` with output passed through to the terminal."""
        args = [str(a) for a in args]
        logger.info(f"Running: {' '.join(args)}")
        if self.dry_run:
            return 0
        try:
            returncode = subprocess.call(args, cwd=cwd)
        except FileNotFoundError as e:
            raise CommandError(args, 127, str(e)) from e
        if returncode != 0:
            raise CommandError(args, returncode)
        return returncode
