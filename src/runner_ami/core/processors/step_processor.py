#!/usr/bin/env python3
"""Sequential step processor for setup and provisioning jobs."""

import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from runner_ami.utils.logger import setup_logger

Step = Tuple[str, Callable[[], Any]]


@dataclass
class ProcessingResult:
    """Result of a step processing run."""

    results: Dict[str, Any]
    processed_steps: int
    total_steps: int
    errors: List[str]
    execution_time: float = 0.0
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    success_rate: float = field(init=False)
    failed_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Calculate success rate after initialization."""
        if self.total_steps > 0:
            self.success_rate = (self.processed_steps / self.total_steps) * 100
        else:
            self.success_rate = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.failed_steps and not self.skipped_steps

    @classmethod
    def combine(cls, *parts: "ProcessingResult") -> "ProcessingResult":
        """Merge the results of consecutive runs into one."""
        return cls(
            results={k: v for part in parts for k, v in part.results.items()},
            processed_steps=sum(p.processed_steps for p in parts),
            total_steps=sum(p.total_steps for p in parts),
            errors=[e for p in parts for e in p.errors],
            execution_time=sum(p.execution_time for p in parts),
            start_time=parts[0].start_time if parts else None,
            end_time=parts[-1].end_time if parts else None,
            failed_steps=[s for p in parts for s in p.failed_steps],
            skipped_steps=[s for p in parts for s in p.skipped_steps],
        )

    def render(self) -> str:
        lines = [f"{self.processed_steps}/{self.total_steps} steps completed in {self.execution_time:.2f}s"]
        lines.extend(f"  failed: {step}" for step in self.failed_steps)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "processed_steps": self.processed_steps,
            "total_steps": self.total_steps,
            "success_rate": f"{self.success_rate:.2f}%",
            "execution_time": f"{self.execution_time:.2f}s",
            "start_time": self.start_time,
            "end_time": self.end_time,
            "errors_count": len(self.errors),
            "errors": self.errors,
            "failed_steps": self.failed_steps,
            "skipped_steps": self.skipped_steps,
        }


class StepProcessor:
    """Runs named steps strictly in order.

    By default the first failing step aborts the run and its exception is
    re-raised after being recorded, like a shell script under ``set -e``.
    With ``continue_on_error`` the failure is recorded and the next step runs.
    """

    def __init__(self, name: str = "step_processor", continue_on_error: bool = False):
        self.name = name
        self.continue_on_error = continue_on_error
        self.logger = setup_logger(__name__, "step_processor.log")
        self.last_result: Optional[ProcessingResult] = None

    def run_steps(
        self,
        steps: Sequence[Step],
        operation_name: str = "unknown",
        correlation_id: Optional[str] = None,
    ) -> ProcessingResult:
        """Run ``steps`` and return a :class:`ProcessingResult`.

        ``last_result`` is populated even when a step raises.
        """
        start = time.time()
        prefix = f"[{correlation_id}] " if correlation_id else ""
        self.logger.info(f"{prefix}Starting {operation_name}: {len(steps)} steps")

        results: Dict[str, Any] = {}
        errors: List[str] = []
        failed: List[str] = []
        processed = 0

        def finish(skipped: List[str]) -> ProcessingResult:
            end = time.time()
            result = ProcessingResult(
                results=results,
                processed_steps=processed,
                total_steps=len(steps),
                errors=errors,
                execution_time=end - start,
                start_time=time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime(start)),
                end_time=time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime(end)),
                failed_steps=failed,
                skipped_steps=skipped,
            )
            self.last_result = result
            self.logger.info(
                f"{prefix}{operation_name} finished: {processed}/{len(steps)} steps "
                f"in {result.execution_time:.2f}s"
            )
            return result

        for index, (step_name, step) in enumerate(steps, 1):
            self.logger.info(f"{prefix}=== {step_name} ({index}/{len(steps)}) ===")
            try:
                results[step_name] = step()
                processed += 1
            except Exception as e:
                error_msg = f"{prefix}Step '{step_name}' failed: {e}"
                errors.append(error_msg)
                failed.append(step_name)
                self.logger.error(error_msg)
                if not self.continue_on_error:
                    finish([name for name, _ in steps[index:]])
                    raise

        return finish([])
