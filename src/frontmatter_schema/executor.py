"""The state machine that drives a pipeline run.

The machine holds the current `PipelineState` and runs the six commands in
order. After each command it stops on a terminal state and otherwise checks
the wall-clock budget; a run over budget is forced into `failed`. Commands
never raise by contract, so an exception escaping one is converted into a
`failed` state with stage ``"unknown"``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
import logging
from time import perf_counter
import typing

from frontmatter_schema.core.types import Failure, Result, Success
from frontmatter_schema.exceptions import ConfigurationError, PipelineExecutionError
from frontmatter_schema.pipeline.base import PipelineCommand
from frontmatter_schema.pipeline.commands import default_commands
from frontmatter_schema.pipeline.states import (
    FailedState,
    InitializingState,
    PipelineConfig,
    PipelineState,
    is_terminal,
)
from frontmatter_schema.telemetry import TelemetryContext, TelemetryReporter

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class PipelineExecutionResult:
    """Outcome of `PipelineStateMachine.execute_pipeline`."""

    final_state: PipelineState
    execution_time_ms: float
    stages: tuple[str, ...]
    commands_executed: tuple[str, ...]
    metrics: Mapping[str, typing.Any]

    @property
    def success(self) -> bool:
        return self.final_state.tag == "completed"


class PipelineStateMachine:
    """Runs commands against a single, explicitly held pipeline state.

    Args:
        config: Inputs of the run; its settings carry the time budget.
        commands: Override the default six commands (tests, extensions).
        reporters: Telemetry reporters; see `frontmatter_schema.telemetry`.
    """

    def __init__(
        self,
        config: PipelineConfig,
        commands: Iterable[PipelineCommand] | None = None,
        *,
        reporters: Iterable[TelemetryReporter] = (),
    ) -> None:
        self.config = config
        self._state: PipelineState = InitializingState(config=config)
        self.commands: tuple[PipelineCommand, ...] = tuple(
            commands if commands is not None else default_commands()
        )
        if not self.commands:
            raise ValueError("Pipeline may not be empty; provide at least one command.")
        self._telemetry = TelemetryContext(*reporters)

    @property
    def state(self) -> PipelineState:
        return self._state

    async def execute_command(
        self, command: PipelineCommand
    ) -> Result[PipelineState, ConfigurationError]:
        """Run one command; the held state changes only on `Success`."""
        result = await command.execute(self._state)
        if isinstance(result, Success):
            logger.debug(
                "%s: %s -> %s", command.name, self._state.tag, result.value.tag
            )
            self._state = result.value
        else:
            logger.debug("%s refused in state %s", command.name, self._state.tag)
        return result

    async def execute_pipeline(
        self, max_execution_time_ms: int | None = None
    ) -> PipelineExecutionResult:
        """Run every command until a terminal state, budget exhaustion or the end.

        Args:
            max_execution_time_ms: Overrides the configured budget.
        """
        budget_ms = max_execution_time_ms or self.config.settings.max_execution_time_ms
        ctx = self._telemetry
        start = perf_counter()
        stages: list[str] = [self._state.tag]
        executed: list[str] = []
        durations: list[float] = []

        for command in self.commands:
            if is_terminal(self._state):
                break

            command_start = perf_counter()
            with ctx("pipeline.command", command=command.name, stage=self._state.tag):
                try:
                    result = await self.execute_command(command)
                except Exception as e:
                    logger.error("Command %s raised: %s", command.name, e, exc_info=True)
                    ctx.count("pipeline.error", command=command.name)
                    self._state = FailedState(
                        error=PipelineExecutionError(
                            f"Unexpected error in {command.name}: {e}", "unknown"
                        ),
                        stage="unknown",
                    )
                    result = None
            durations.append((perf_counter() - command_start) * 1000)
            executed.append(command.name)

            if isinstance(result, Failure):
                # A refusal means the command list is out of order
                ctx.count("pipeline.refused", command=command.name)
                self._state = FailedState(error=result.error, stage=self._state.tag)
            stages.append(self._state.tag)

            if is_terminal(self._state):
                break

            elapsed_ms = (perf_counter() - start) * 1000
            if elapsed_ms > budget_ms:
                ctx.count("pipeline.timeout", stage=self._state.tag)
                logger.warning(
                    "Pipeline exceeded %d ms after %s (%.1f ms elapsed)",
                    budget_ms,
                    command.name,
                    elapsed_ms,
                )
                stage = self._state.tag
                self._state = FailedState(
                    error=PipelineExecutionError(
                        f"Pipeline execution exceeded {budget_ms} ms", stage
                    ),
                    stage=stage,
                )
                stages.append(self._state.tag)
                break

        total_ms = (perf_counter() - start) * 1000
        success = self._state.tag == "completed"
        metrics = {
            "average_command_time_ms": sum(durations) / len(durations) if durations else 0.0,
            "command_times_ms": list(zip(executed, durations, strict=True)),
            "state_transitions": len(stages) - 1,
            "success": success,
        }
        if isinstance(self._state, FailedState):
            ctx.count("pipeline.failed", stage=self._state.stage)
            logger.info(
                "Pipeline failed at %s: %s", self._state.stage, self._state.error.message
            )
        else:
            logger.info("Pipeline finished in state %s (%.1f ms)", self._state.tag, total_ms)
        return PipelineExecutionResult(
            final_state=self._state,
            execution_time_ms=total_ms,
            stages=tuple(stages),
            commands_executed=tuple(executed),
            metrics=metrics,
        )


async def run_pipeline(
    config: PipelineConfig,
    *,
    reporters: Iterable[TelemetryReporter] = (),
) -> PipelineExecutionResult:
    """Convenience wrapper: build a machine with the default commands and run it."""
    return await PipelineStateMachine(config, reporters=reporters).execute_pipeline()
