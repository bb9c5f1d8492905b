from powerplatform_mcp.services.assemblies import AssemblyCatalog
from powerplatform_mcp.services.dependencies import DependencyChecker
from powerplatform_mcp.services.entities import EntityService
from powerplatform_mcp.services.images import ImageBinder
from powerplatform_mcp.services.option_sets import OptionSetService
from powerplatform_mcp.services.pipeline import PipelineAssembler
from powerplatform_mcp.services.records import RecordService
from powerplatform_mcp.services.steps import StepAggregator
from powerplatform_mcp.services.trace_logs import TraceLogInterpreter
from powerplatform_mcp.services.validation import PipelineValidator

__all__ = [
    "AssemblyCatalog",
    "DependencyChecker",
    "EntityService",
    "ImageBinder",
    "OptionSetService",
    "PipelineAssembler",
    "PipelineValidator",
    "RecordService",
    "StepAggregator",
    "TraceLogInterpreter",
]
