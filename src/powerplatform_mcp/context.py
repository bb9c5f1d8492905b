# src/powerplatform_mcp/context.py
"""
Lazily-built services shared by MCP tools and prompts.

Nothing touches the network or validates connection settings until the
first tool call, so the server can start (and list its tools) before it
is configured.

Usage:
    ctx = get_context()
    pipeline = ctx.pipeline.assemble_for_entity("account")
"""
import logging
from functools import cached_property
from typing import Optional

from powerplatform_mcp.client import PowerPlatformClient
from powerplatform_mcp.config import AppSettings, get_settings
from powerplatform_mcp.services import (
    AssemblyCatalog,
    DependencyChecker,
    EntityService,
    ImageBinder,
    OptionSetService,
    PipelineAssembler,
    RecordService,
    StepAggregator,
    TraceLogInterpreter,
)

logger = logging.getLogger(__name__)


class ServiceContext:
    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        client: Optional[PowerPlatformClient] = None,
    ):
        self._settings = settings
        self._client = client

    @property
    def settings(self) -> AppSettings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def client(self) -> PowerPlatformClient:
        if self._client is None:
            self._client = PowerPlatformClient(self.settings.powerplatform)
            logger.info(f"PowerPlatform client initialized for {self._client.organization_url}")
        return self._client

    @cached_property
    def entities(self) -> EntityService:
        return EntityService(self.client)

    @cached_property
    def records(self) -> RecordService:
        return RecordService(self.client)

    @cached_property
    def option_sets(self) -> OptionSetService:
        return OptionSetService(self.client)

    @cached_property
    def assemblies(self) -> AssemblyCatalog:
        return AssemblyCatalog(self.client)

    @cached_property
    def pipeline(self) -> PipelineAssembler:
        return PipelineAssembler(
            self.assemblies,
            StepAggregator(self.client),
            ImageBinder(self.client),
            max_workers=self.settings.powerplatform.max_workers,
        )

    @cached_property
    def trace_logs(self) -> TraceLogInterpreter:
        return TraceLogInterpreter(self.client)

    @cached_property
    def dependencies(self) -> DependencyChecker:
        return DependencyChecker(self.client)

    def close(self):
        if self._client is not None:
            self._client.close()


# Singleton instance (lazy-loaded)
_context: Optional[ServiceContext] = None


def get_context() -> ServiceContext:
    """Get the singleton service context, creating it on first access."""
    global _context
    if _context is None:
        _context = ServiceContext()
    return _context


def set_context(context: Optional[ServiceContext]):
    """Replace the singleton context (useful for testing)."""
    global _context
    _context = context
