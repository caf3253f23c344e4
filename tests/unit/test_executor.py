"""State machine behavior: termination, budget, exceptions and metrics."""

import asyncio
from typing import Any

import pytest

from frontmatter_schema.core.types import Failure, Success
from frontmatter_schema.exceptions import ConfigurationError, PipelineExecutionError
from frontmatter_schema.executor import PipelineStateMachine, run_pipeline
from frontmatter_schema.pipeline.commands import InitializeCommand, LoadSchemaCommand
from frontmatter_schema.pipeline.states import (
    FailedState,
    InitializingState,
    SchemaLoadingState,
)

pytestmark = pytest.mark.unit


class _Step:
    """Moves initializing -> schema-loading, optionally slowly."""

    name = "Step"
    accepts = "initializing"

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay

    def can_execute(self, state: Any) -> bool:
        return state.tag == self.accepts

    async def execute(self, state: Any):
        if self.delay:
            await asyncio.sleep(self.delay)
        return Success(SchemaLoadingState(config=state.config))


class _Exploding:
    name = "Exploding"
    accepts = "initializing"

    def can_execute(self, state: Any) -> bool:
        return True

    async def execute(self, state: Any):
        raise RuntimeError("kaboom")


class _Recording:
    name = "Recording"
    accepts = "schema-loading"

    def __init__(self) -> None:
        self.calls = 0

    def can_execute(self, state: Any) -> bool:
        return True

    async def execute(self, state: Any):
        self.calls += 1
        return Success(state)


def test_empty_command_list_is_rejected(pipeline_config):
    with pytest.raises(ValueError, match="may not be empty"):
        PipelineStateMachine(pipeline_config(), commands=[])


@pytest.mark.asyncio
async def test_terminal_state_stops_the_run(pipeline_config):
    recorder = _Recording()
    # Initialize fails because no schema file exists
    machine = PipelineStateMachine(pipeline_config(), [InitializeCommand(), recorder])

    result = await machine.execute_pipeline()

    assert isinstance(result.final_state, FailedState)
    assert result.final_state.stage == "initializing"
    assert result.commands_executed == ("Initialize",)
    assert recorder.calls == 0
    assert result.success is False


@pytest.mark.asyncio
async def test_budget_overrun_fails_at_the_current_stage(pipeline_config):
    recorder = _Recording()
    machine = PipelineStateMachine(pipeline_config(), [_Step(delay=0.05), recorder])

    result = await machine.execute_pipeline(max_execution_time_ms=1)

    final = result.final_state
    assert isinstance(final, FailedState)
    assert final.stage == "schema-loading"
    assert isinstance(final.error, PipelineExecutionError)
    assert "exceeded 1 ms" in final.error.message
    assert recorder.calls == 0
    assert result.stages == ("initializing", "schema-loading", "failed")


@pytest.mark.asyncio
async def test_exception_becomes_unknown_stage_failure(pipeline_config):
    machine = PipelineStateMachine(pipeline_config(), [_Exploding()])

    result = await machine.execute_pipeline()

    final = result.final_state
    assert isinstance(final, FailedState)
    assert final.stage == "unknown"
    assert isinstance(final.error, PipelineExecutionError)
    assert "kaboom" in final.error.message


@pytest.mark.asyncio
async def test_out_of_order_command_fails_the_run(pipeline_config):
    machine = PipelineStateMachine(pipeline_config(), [LoadSchemaCommand()])

    result = await machine.execute_pipeline()

    final = result.final_state
    assert isinstance(final, FailedState)
    assert final.stage == "initializing"
    assert isinstance(final.error, ConfigurationError)


@pytest.mark.asyncio
async def test_execute_command_only_moves_on_success(pipeline_config):
    machine = PipelineStateMachine(pipeline_config(), [_Step()])

    refused = await machine.execute_command(LoadSchemaCommand())
    assert isinstance(refused, Failure)
    assert isinstance(machine.state, InitializingState)

    moved = await machine.execute_command(_Step())
    assert isinstance(moved, Success)
    assert isinstance(machine.state, SchemaLoadingState)


@pytest.mark.asyncio
async def test_metrics_describe_the_run(pipeline_config):
    recorder = _Recording()
    machine = PipelineStateMachine(pipeline_config(), [_Step(), recorder])

    result = await machine.execute_pipeline()

    # No command reached a terminal state, so the run ends where it stands
    assert result.final_state.tag == "schema-loading"
    assert result.commands_executed == ("Step", "Recording")
    assert result.metrics["state_transitions"] == 2
    assert result.metrics["success"] is False
    assert [name for name, _ in result.metrics["command_times_ms"]] == ["Step", "Recording"]
    assert result.metrics["average_command_time_ms"] >= 0
    assert result.execution_time_ms >= 0


@pytest.mark.asyncio
async def test_repeated_commands_keep_separate_timings(pipeline_config):
    recorder = _Recording()
    machine = PipelineStateMachine(pipeline_config(), [_Step(), recorder, recorder])

    result = await machine.execute_pipeline()

    assert recorder.calls == 2
    timings = result.metrics["command_times_ms"]
    assert [name for name, _ in timings] == ["Step", "Recording", "Recording"]
    assert all(ms >= 0 for _, ms in timings)


@pytest.mark.asyncio
async def test_reporters_receive_command_scopes(pipeline_config, recording_reporter):
    reporter = recording_reporter
    machine = PipelineStateMachine(
        pipeline_config(), [_Step(), _Recording()], reporters=[reporter]
    )

    await machine.execute_pipeline()

    timings = reporter.timings["pipeline.command"]
    assert [meta["command"] for _, meta in timings] == ["Step", "Recording"]
    assert [meta["stage"] for _, meta in timings] == ["initializing", "schema-loading"]


@pytest.mark.asyncio
async def test_run_pipeline_end_to_end(write_schema, write_docs, pipeline_config, tmp_path):
    write_schema({"type": "object"})
    write_docs({"a.md": "title: A\n"})

    result = await run_pipeline(pipeline_config())

    assert result.success
    assert result.commands_executed == (
        "Initialize",
        "LoadSchema",
        "ResolveTemplate",
        "ProcessDocuments",
        "PrepareData",
        "RenderOutput",
    )
    assert (tmp_path / "out" / "result.json").is_file()
