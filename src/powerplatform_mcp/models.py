# src/powerplatform_mcp/models.py
"""
Typed shapes for Web API rows and for the views we hand back to callers.

Two families:
- *Record models: one per remote row shape we consume. Attribute names are
  pythonic; aliases carry the raw Web API column names. Every field is
  optional and unknown columns are ignored.
- View models: request-scoped results. They serialize with camelCase keys
  (``executionOrder``, ``potentialIssues`` ...) via ``to_payload()``.
"""
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, computed_field, field_validator
from pydantic.alias_generators import to_camel

from powerplatform_mcp.enums import ImageType
from powerplatform_mcp.errors import RemoteReadError

R = TypeVar("R", bound=BaseModel)


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _View(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def parse_rows(model: Type[R], rows: Iterable[Dict[str, Any]]) -> List[R]:
    """Validate raw rows into record models; malformed rows are a read failure."""
    try:
        return [model.model_validate(row) for row in rows]
    except ValidationError as e:
        raise RemoteReadError(f"Unexpected {model.__name__} shape in API response: {e}") from e


def _unwrap_managed_property(value):
    # Boolean managed properties come back as {"Value": bool, "CanBeChanged": ...}
    if isinstance(value, dict):
        return value.get("Value")
    return value


# --- Expanded navigation properties ---


class UserRef(_Record):
    fullname: Optional[str] = None


class MessageRef(_Record):
    name: Optional[str] = None


class PluginTypeRef(_Record):
    typename: Optional[str] = None


class MessageFilterRef(_Record):
    primaryobjecttypecode: Optional[str] = None


class AssemblyRef(_View):
    """Name/version of the assembly that owns a plugin type."""

    name: Optional[str] = None
    version: Optional[str] = None


# --- Remote rows ---


class AssemblyRecord(_Record):
    id: Optional[str] = Field(None, alias="pluginassemblyid")
    name: Optional[str] = None
    version: Optional[str] = None
    culture: Optional[str] = None
    public_key_token: Optional[str] = Field(None, alias="publickeytoken")
    isolation_mode: Optional[int] = Field(None, alias="isolationmode")
    source_type: Optional[int] = Field(None, alias="sourcetype")
    major: Optional[int] = None
    minor: Optional[int] = None
    created_on: Optional[str] = Field(None, alias="createdon")
    modified_on: Optional[str] = Field(None, alias="modifiedon")
    is_managed: Optional[bool] = Field(None, alias="ismanaged")
    is_hidden: Optional[bool] = Field(None, alias="ishidden")
    description: Optional[str] = None
    modified_by: Optional[UserRef] = Field(None, alias="modifiedby")

    @field_validator("is_managed", "is_hidden", mode="before")
    @classmethod
    def unwrap_managed_property(cls, value):
        return _unwrap_managed_property(value)

    @property
    def modified_by_name(self) -> Optional[str]:
        return self.modified_by.fullname if self.modified_by else None


class PluginTypeRecord(_Record):
    id: Optional[str] = Field(None, alias="plugintypeid")
    type_name: Optional[str] = Field(None, alias="typename")
    friendly_name: Optional[str] = Field(None, alias="friendlyname")
    name: Optional[str] = None
    assembly_name: Optional[str] = Field(None, alias="assemblyname")
    description: Optional[str] = None
    workflow_activity_group_name: Optional[str] = Field(None, alias="workflowactivitygroupname")
    assembly: Optional[AssemblyRef] = Field(None, alias="pluginassemblyid")


class StepRecord(_Record):
    id: Optional[str] = Field(None, alias="sdkmessageprocessingstepid")
    name: Optional[str] = None
    stage: Optional[int] = None
    mode: Optional[int] = None
    rank: Optional[int] = None
    status_code: Optional[int] = Field(None, alias="statuscode")
    supported_deployment: Optional[int] = Field(None, alias="supporteddeployment")
    filtering_attributes: Optional[str] = Field(None, alias="filteringattributes")
    description: Optional[str] = None
    configuration: Optional[str] = None
    async_auto_delete: Optional[bool] = Field(None, alias="asyncautodelete")
    invocation_source: Optional[int] = Field(None, alias="invocationsource")
    plugin_type_id: Optional[str] = Field(None, alias="_plugintypeid_value")
    message: Optional[MessageRef] = Field(None, alias="sdkmessageid")
    plugin_type: Optional[PluginTypeRef] = Field(None, alias="plugintypeid")
    impersonating_user: Optional[UserRef] = Field(None, alias="impersonatinguserid")
    message_filter: Optional[MessageFilterRef] = Field(None, alias="sdkmessagefilterid")

    @property
    def message_name(self) -> Optional[str]:
        return self.message.name if self.message else None

    @property
    def plugin_type_name(self) -> Optional[str]:
        return self.plugin_type.typename if self.plugin_type else None

    @property
    def primary_entity(self) -> Optional[str]:
        return self.message_filter.primaryobjecttypecode if self.message_filter else None

    @property
    def impersonating_user_name(self) -> Optional[str]:
        return self.impersonating_user.fullname if self.impersonating_user else None


class ImageRecord(_Record):
    id: Optional[str] = Field(None, alias="sdkmessageprocessingstepimageid")
    name: Optional[str] = None
    image_type: Optional[int] = Field(None, alias="imagetype")
    message_property_name: Optional[str] = Field(None, alias="messagepropertyname")
    entity_alias: Optional[str] = Field(None, alias="entityalias")
    attributes: Optional[str] = None
    step_id: Optional[str] = Field(None, alias="_sdkmessageprocessingstepid_value")


class TraceLogRecord(_Record):
    id: Optional[str] = Field(None, alias="plugintracelogid")
    created_on: Optional[str] = Field(None, alias="createdon")
    type_name: Optional[str] = Field(None, alias="typename")
    message_name: Optional[str] = Field(None, alias="messagename")
    primary_entity: Optional[str] = Field(None, alias="primaryentity")
    mode: Optional[int] = None
    operation_type: Optional[int] = Field(None, alias="operationtype")
    depth: Optional[int] = None
    correlation_id: Optional[str] = Field(None, alias="correlationid")
    request_id: Optional[str] = Field(None, alias="requestid")
    plugin_step_id: Optional[str] = Field(None, alias="pluginstepid")
    performance_execution_duration: Optional[int] = Field(None, alias="performanceexecutionduration")
    message_block: Optional[str] = Field(None, alias="messageblock")
    exception_details: Optional[str] = Field(None, alias="exceptiondetails")


# --- Views ---


class Assembly(_View):
    plugin_assembly_id: Optional[str] = None
    name: Optional[str] = None
    version: Optional[str] = None
    isolation_mode: str = "Unknown"
    is_managed: Optional[bool] = None
    modified_on: Optional[str] = None
    modified_by: Optional[str] = None
    major: Optional[int] = None
    minor: Optional[int] = None
    description: Optional[str] = None


class AssemblyListing(_View):
    total_count: int
    assemblies: List[Assembly]


class PluginType(_View):
    plugin_type_id: Optional[str] = None
    type_name: Optional[str] = None
    friendly_name: Optional[str] = None
    name: Optional[str] = None
    assembly_name: Optional[str] = None
    description: Optional[str] = None
    workflow_activity_group_name: Optional[str] = None


class StepImage(_View):
    image_id: Optional[str] = None
    name: Optional[str] = None
    image_type: Optional[int] = None
    image_type_name: str = "Unknown"
    message_property_name: Optional[str] = None
    entity_alias: Optional[str] = None
    attributes: List[str] = Field(default_factory=list)
    step_id: Optional[str] = None


class PipelineStep(_View):
    """One registered step, enriched with labels, owning assembly and images."""

    step_id: Optional[str] = None
    name: Optional[str] = None
    stage: Optional[int] = None
    stage_name: str = "Unknown"
    mode: Optional[int] = None
    mode_name: str = "Unknown"
    rank: Optional[int] = None
    message: Optional[str] = None
    primary_entity: Optional[str] = None
    plugin_type_id: Optional[str] = None
    plugin_type: Optional[str] = None
    assembly_name: Optional[str] = None
    assembly_version: Optional[str] = None
    filtering_attributes: List[str] = Field(default_factory=list)
    status_code: Optional[int] = None
    enabled: bool = False
    deployment: str = "Unknown"
    impersonating_user: Optional[str] = None
    description: Optional[str] = None
    configuration: Optional[str] = None
    images: List[StepImage] = Field(default_factory=list)

    @computed_field(alias="hasPreImage")
    @property
    def has_pre_image(self) -> bool:
        return any(i.image_type in (ImageType.PRE_IMAGE, ImageType.BOTH) for i in self.images)

    @computed_field(alias="hasPostImage")
    @property
    def has_post_image(self) -> bool:
        return any(i.image_type in (ImageType.POST_IMAGE, ImageType.BOTH) for i in self.images)


class StageBuckets(_View):
    pre_validation: List[PipelineStep] = Field(default_factory=list)
    pre_operation: List[PipelineStep] = Field(default_factory=list)
    post_operation: List[PipelineStep] = Field(default_factory=list)

    def all_steps(self) -> List[PipelineStep]:
        return self.pre_validation + self.pre_operation + self.post_operation


class MessagePipeline(_View):
    message_name: str
    stages: StageBuckets = Field(default_factory=StageBuckets)


class ValidationFinding(_View):
    rule: str
    step_name: Optional[str] = None


class ValidationReport(_View):
    has_disabled_steps: bool = False
    has_async_steps: bool = False
    has_sync_steps: bool = False
    steps_without_filtering_attributes: List[Optional[str]] = Field(default_factory=list)
    steps_without_images: List[Optional[str]] = Field(default_factory=list)
    potential_issues: List[str] = Field(default_factory=list)
    findings: List[ValidationFinding] = Field(default_factory=list)


class AssemblyPipeline(_View):
    assembly: Assembly
    plugin_types: List[PluginType]
    steps: List[PipelineStep]
    validation: ValidationReport


class EntityPipeline(_View):
    entity: str
    messages: List[MessagePipeline]
    steps: List[PipelineStep]
    execution_order: List[Optional[str]]
    validation: ValidationReport


class ParsedException(_View):
    has_exception: bool = False
    exception_type: Optional[str] = None
    exception_message: Optional[str] = None
    stack_trace: Optional[str] = None


class TraceLog(_View):
    trace_log_id: Optional[str] = None
    created_on: Optional[str] = None
    type_name: Optional[str] = None
    message_name: Optional[str] = None
    primary_entity: Optional[str] = None
    mode: Optional[int] = None
    mode_name: str = "Unknown"
    operation_type: Optional[int] = None
    operation_type_name: str = "Unknown"
    depth: Optional[int] = None
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None
    plugin_step_id: Optional[str] = None
    performance_execution_duration: Optional[int] = None
    message_block: Optional[str] = None
    parsed: ParsedException = Field(default_factory=ParsedException)


class TraceLogListing(_View):
    total_count: int
    logs: List[TraceLog]


class DependencyEdge(_View):
    """Dependent component -> required component, as reported by the platform."""

    dependent_component_object_id: Optional[str] = None
    dependent_component_type: Optional[int] = None
    dependent_component_type_name: str = "Unknown"
    required_component_object_id: Optional[str] = None
    required_component_type: Optional[int] = None
    required_component_type_name: str = "Unknown"
    dependency_type: Optional[int] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)


class DeleteEligibility(_View):
    can_delete: bool
    dependencies: List[DependencyEdge] = Field(default_factory=list)
