"""Base protocol for pipeline commands."""

from typing import Protocol, runtime_checkable

from frontmatter_schema.core.types import Result
from frontmatter_schema.exceptions import ConfigurationError
from frontmatter_schema.pipeline.states import PipelineState, StateTag


@runtime_checkable
class PipelineCommand(Protocol):
    """Protocol for the commands that advance a pipeline by one stage.

    A command is legal in exactly one predecessor state. Invoked against any
    other state it returns `Failure(ConfigurationError)`. Domain failures are
    not errors at this level: they come back as `Success(FailedState)`.
    """

    name: str
    accepts: StateTag

    def can_execute(self, state: PipelineState) -> bool:
        """Return True if `state` is this command's legal predecessor."""
        ...

    async def execute(
        self, state: PipelineState
    ) -> Result[PipelineState, ConfigurationError]:
        """Advance `state` by one stage.

        Args:
            state: The current pipeline state.

        Returns:
            The next state (possibly a `FailedState`) or a refusal.
        """
        ...
