"""Base job class for runner AMI operations."""

from abc import ABC, abstractmethod
from typing import Any, Optional
import boto3
import uuid
from runner_ami.utils.logger import setup_logger
from runner_ami.utils.config import ConfigManager
from runner_ami.utils.session import SessionManager


class BaseJob(ABC):
    """Base class for all runner AMI jobs."""

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        job_name: Optional[str] = None,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        session: Optional[boto3.Session] = None,
    ):
        """Initialize the job with configuration.

        ``profile`` and ``region`` fall back to settings (and AWS_PROFILE /
        AWS_REGION). A ready-made ``session`` skips profile resolution.
        """
        self.config_manager = config_manager or ConfigManager()

        self.job_name = job_name or self.__class__.__name__.lower().replace("job", "")
        self.correlation_id = str(uuid.uuid4())[:8]  # Short correlation ID for tracking

        self.profile = profile or self.config_manager.get_aws_profile()
        self.region = region or self.config_manager.get_aws_region()
        self._session = session

        self.logger = setup_logger(
            name=self.__class__.__module__,
            log_file=f"{self.job_name}.log",
            level=self.config_manager.get_logging_level(),
        )

    @property
    def session(self) -> boto3.Session:
        """AWS session for the configured profile, created on first use."""
        if self._session is None:
            self.log(f"Creating AWS session with profile {self.profile} in {self.region}")
            self._session = SessionManager.for_profile(self.profile, self.region)
        return self._session

    def log(self, message: str, level: str = "info") -> None:
        """Log with the job's correlation ID prefix."""
        getattr(self.logger, level)(f"[{self.correlation_id}] {message}")

    @abstractmethod
    def execute(self, **kwargs) -> Any:
        """Execute the job with given parameters."""
        pass
