"""Decorator patterns wiring CLI commands to jobs."""

import click
import importlib
from functools import wraps
from typing import Any, Callable, Optional, Type

from runner_ami.utils.config import ConfigManager
from runner_ami.utils.logger import setup_logger

# Centralized job registry
JOB_REGISTRY = {
    "setup_aws": "runner_ami.jobs.setup_aws.SetupAWSJob",
    "get_resources": "runner_ami.jobs.get_resources.GetResourcesJob",
    "configure_environment": "runner_ami.jobs.configure_environment.ConfigureEnvironmentJob",
    "build_ami": "runner_ami.jobs.build_ami.BuildAMIJob",
}

# Options consumed by the decorator or the job constructor, not by execute()
CONSTRUCTOR_OPTIONS = ("root", "helper_scripts")


def get_job_class(operation_name: str) -> Type:
    """Resolve the job class registered for ``operation_name``.

    Raises:
        ValueError: If the operation is not registered
    """
    job_path = JOB_REGISTRY.get(operation_name)
    if not job_path:
        raise ValueError(f"Unknown operation: {operation_name}")
    module_path, class_name = job_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def handle_operation_error(operation_name: str, error: Exception) -> None:
    """Centralized error handling for operations.

    Args:
        operation_name: Name of the operation that failed
        error: Exception that occurred
    """
    error_msg = f"Error in {operation_name}: {str(error)}"
    click.echo(error_msg, err=True)

    logger = setup_logger("runner_ami.errors", "errors.log")
    logger.debug(
        error_msg,
        extra={"operation": operation_name, "error_type": type(error).__name__},
    )


def handle_output(results: Any, output_handler: Optional[Callable] = None, **options) -> None:
    """Print job results with a command specific handler, or ``render()``/``str``."""
    if results is None:
        return
    if output_handler:
        output_handler(results, **options)
    elif hasattr(results, "render"):
        click.echo(results.render())
    else:
        click.echo(results)


def job_operation(
    requires_confirmation: bool = False,
    output_handler: Optional[Callable] = None,
    confirmation_message: Optional[str] = None,
):
    """Run the job registered under the decorated command's name.

    Args:
        requires_confirmation: Ask before running unless ``--force`` is given
        output_handler: Custom output handler ``(results, **options)``
        confirmation_message: Prompt text
    """

    def decorator(func: Callable) -> Callable:
        operation_name = func.__name__
        job_class = get_job_class(operation_name)

        @wraps(func)
        def wrapper(ctx, **kwargs):
            ctx.ensure_object(dict)
            # Commands may prompt for or normalize options before the job runs
            kwargs = func(ctx, **kwargs) or kwargs

            force = kwargs.pop("force", False)
            if requires_confirmation and not force:
                message = confirmation_message or f"Continue with {operation_name}?"
                if not click.confirm(message):
                    click.echo("Operation cancelled by user.")
                    return None

            constructor_kwargs = {
                key: kwargs.pop(key) for key in CONSTRUCTOR_OPTIONS if key in kwargs
            }
            # Command level --profile/--region win over the group options
            profile = kwargs.pop("profile", None) or ctx.obj.get("profile")
            region = kwargs.pop("region", None) or ctx.obj.get("region")
            try:
                job = job_class(
                    ctx.obj.get("config") or ConfigManager(),
                    profile=profile,
                    region=region,
                    **constructor_kwargs,
                )
                results = job.execute(**kwargs)
            except Exception as e:
                handle_operation_error(operation_name, e)
                if ctx.obj.get("verbose"):
                    raise
                ctx.exit(1)

            handle_output(results, output_handler, **kwargs)
            return results

        return wrapper

    return decorator
