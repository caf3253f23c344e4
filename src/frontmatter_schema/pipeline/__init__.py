"""Pipeline states, commands and document processing."""

from .base import PipelineCommand
from .commands import (
    InitializeCommand,
    LoadSchemaCommand,
    PrepareDataCommand,
    ProcessDocumentsCommand,
    RenderOutputCommand,
    ResolveTemplateCommand,
    default_commands,
)
from .states import (
    CompletedState,
    DataPreparingState,
    DocumentProcessingState,
    FailedState,
    InitializingState,
    OutputRenderingState,
    PipelineConfig,
    PipelineState,
    SchemaLoadingState,
    TemplateResolvingState,
    is_terminal,
)

__all__ = [
    "CompletedState",
    "DataPreparingState",
    "DocumentProcessingState",
    "FailedState",
    "InitializeCommand",
    "InitializingState",
    "LoadSchemaCommand",
    "OutputRenderingState",
    "PipelineCommand",
    "PipelineConfig",
    "PipelineState",
    "PrepareDataCommand",
    "ProcessDocumentsCommand",
    "RenderOutputCommand",
    "ResolveTemplateCommand",
    "SchemaLoadingState",
    "TemplateResolvingState",
    "default_commands",
    "is_terminal",
]
