"""Tests for the saga runner."""

from __future__ import annotations

import pytest

from sendflow.core.saga import Saga, StepStatus
from sendflow.errors import RollbackFailure, TransferAborted


class Boom(Exception):
    pass


def _recorder(log, name, result=None, exc=None):
    async def _call():
        log.append(name)
        if exc is not None:
            raise exc
        return result

    return _call


async def test_steps_return_action_results() -> None:
    saga = Saga("t")
    assert await saga.run_step("one", _recorder([], "one", result=42)) == 42
    assert [s.name for s in saga.applied] == ["one"]


async def test_failure_before_any_compensable_step_reraises_original() -> None:
    saga = Saga("t")
    await saga.run_step("lookup", _recorder([], "lookup"))
    with pytest.raises(Boom):
        await saga.run_step("debit", _recorder([], "debit", exc=Boom("nope")))


async def test_compensations_run_in_reverse_order() -> None:
    log = []
    saga = Saga("t", reference="ref-1")
    await saga.run_step("a", _recorder(log, "a"), _recorder(log, "undo_a"))
    await saga.run_step("b", _recorder(log, "b"), _recorder(log, "undo_b"))
    with pytest.raises(TransferAborted) as info:
        await saga.run_step("c", _recorder(log, "c", exc=Boom("c failed")))

    assert log == ["a", "b", "c", "undo_b", "undo_a"]
    exc = info.value
    assert not isinstance(exc, RollbackFailure)
    assert isinstance(exc.cause, Boom)
    assert isinstance(exc.__cause__, Boom)
    assert "c failed" in exc.message
    assert exc.report.failed_step == "c"
    statuses = {s.name: s.status for s in exc.report.steps}
    assert statuses == {"a": StepStatus.COMPENSATED, "b": StepStatus.COMPENSATED, "c": StepStatus.FAILED}


async def test_failed_compensation_raises_rollback_failure_and_continues() -> None:
    log = []
    saga = Saga("t")
    await saga.run_step("a", _recorder(log, "a"), _recorder(log, "undo_a"))
    await saga.run_step("b", _recorder(log, "b"), _recorder(log, "undo_b", exc=Boom("undo failed")))
    with pytest.raises(RollbackFailure) as info:
        await saga.run_step("c", _recorder(log, "c", exc=Boom("c failed")))

    # undo_a still runs after undo_b failed
    assert log == ["a", "b", "c", "undo_b", "undo_a"]
    failures = info.value.report.compensation_failures
    assert [s.name for s in failures] == ["b"]
    assert failures[0].compensation_error == "undo failed"
    assert info.value.state_name == "ROLLBACK_FAILED"


async def test_non_critical_failure_is_skipped() -> None:
    log = []
    saga = Saga("t")
    await saga.run_step("a", _recorder(log, "a"), _recorder(log, "undo_a"))
    result = await saga.run_step("notify", _recorder(log, "notify", exc=Boom("smtp")), critical=False)
    assert result is None
    assert log == ["a", "notify"]
    assert saga.report.steps[-1].status is StepStatus.SKIPPED


async def test_report_as_dict() -> None:
    saga = Saga("t", reference="r")
    await saga.run_step("a", _recorder([], "a"))
    data = saga.report.as_dict()
    assert data["reference"] == "r"
    assert data["steps"] == [{"name": "a", "status": "done", "error": None, "compensation_error": None}]
