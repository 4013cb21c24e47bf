"""
Minimal saga runner for multi-call money movement.

Steps run one at a time (so callers can branch between steps); each step
pairs an action with an optional compensation. When a critical step fails:

- if nothing has been applied yet, the original exception propagates as-is;
- otherwise compensations of applied steps run in reverse order and the
  failure surfaces as TransferAborted, or RollbackFailure when any
  compensation itself raised. Nothing is retried.

Non-critical steps log their failure and the saga continues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional

from sendflow.errors import RollbackFailure, TransferAborted
from sendflow.logging_config import get_logger

logger = get_logger("sendflow.saga")

Action = Callable[[], Awaitable[Any]]
Compensation = Callable[[], Awaitable[Any]]


class StepStatus(Enum):
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"


@dataclass
class SagaStep:
    name: str
    status: StepStatus
    compensation: Optional[Compensation] = None
    error: Optional[str] = None
    compensation_error: Optional[str] = None


@dataclass
class SagaReport:
    name: str
    reference: Optional[str] = None
    steps: List[SagaStep] = field(default_factory=list)
    failed_step: Optional[str] = None

    @property
    def compensation_failures(self) -> List[SagaStep]:
        return [s for s in self.steps if s.status is StepStatus.COMPENSATION_FAILED]

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "reference": self.reference,
            "failed_step": self.failed_step,
            "steps": [
                {
                    "name": s.name,
                    "status": s.status.value,
                    "error": s.error,
                    "compensation_error": s.compensation_error,
                }
                for s in self.steps
            ],
        }


class Saga:
    def __init__(self, name: str, reference: Optional[str] = None):
        self.report = SagaReport(name=name, reference=reference)

    @property
    def applied(self) -> List[SagaStep]:
        return [s for s in self.report.steps if s.status is StepStatus.DONE]

    async def run_step(
        self,
        name: str,
        action: Action,
        compensation: Optional[Compensation] = None,
        *,
        critical: bool = True,
    ) -> Any:
        try:
            result = await action()
        except Exception as exc:
            if not critical:
                logger.warning("Saga %s[%s]: non-critical step %s failed: %s",
                               self.report.name, self.report.reference, name, exc)
                self.report.steps.append(SagaStep(name=name, status=StepStatus.SKIPPED, error=str(exc)))
                return None
            self.report.steps.append(SagaStep(name=name, status=StepStatus.FAILED, error=str(exc)))
            self.report.failed_step = name
            await self._fail(exc)
            raise  # unreachable; _fail always raises

        self.report.steps.append(SagaStep(name=name, status=StepStatus.DONE, compensation=compensation))
        return result

    async def _fail(self, exc: Exception) -> None:
        to_undo = [s for s in reversed(self.applied) if s.compensation is not None]
        if not to_undo:
            # nothing to undo; surface the original error unchanged
            raise exc

        logger.warning(
            "Saga %s[%s]: step %s failed (%s); compensating %s",
            self.report.name,
            self.report.reference,
            self.report.failed_step,
            exc,
            [s.name for s in to_undo],
        )
        for step in to_undo:
            try:
                await step.compensation()
                step.status = StepStatus.COMPENSATED
                logger.info("Saga %s[%s]: compensated %s", self.report.name, self.report.reference, step.name)
            except Exception as comp_exc:
                step.status = StepStatus.COMPENSATION_FAILED
                step.compensation_error = str(comp_exc)
                logger.critical(
                    "Saga %s[%s]: ROLLBACK_FAILED compensating %s: %s",
                    self.report.name,
                    self.report.reference,
                    step.name,
                    comp_exc,
                )

        message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
        if self.report.compensation_failures:
            raise RollbackFailure(
                f"{message}; automatic refund failed",
                cause=exc,
                report=self.report,
            ) from exc
        raise TransferAborted(f"{message}; funds were returned", cause=exc, report=self.report) from exc
