# src/powerplatform_mcp/enums.py
"""
Option set codes used by the plugin registration tables.

Each enum maps the platform's integer code to the label we report. Codes
we do not know about translate to "Unknown" instead of raising, since new
values occasionally appear in newer platform versions.
"""
from enum import IntEnum
from typing import Optional, Type

UNKNOWN = "Unknown"


class Stage(IntEnum):
    PRE_VALIDATION = 10
    PRE_OPERATION = 20
    MAIN_OPERATION = 30  # Custom API / plug-in based operations only
    POST_OPERATION = 40


class StepMode(IntEnum):
    SYNCHRONOUS = 0
    ASYNCHRONOUS = 1


class StepStatus(IntEnum):
    ENABLED = 1
    DISABLED = 2


class Deployment(IntEnum):
    SERVER = 0
    OFFLINE = 1
    BOTH = 2


class IsolationMode(IntEnum):
    NONE = 1
    SANDBOX = 2
    EXTERNAL = 3


class ImageType(IntEnum):
    PRE_IMAGE = 0
    POST_IMAGE = 1
    BOTH = 2


class OperationType(IntEnum):
    NONE = 0
    CREATE = 1
    UPDATE = 2
    DELETE = 3
    RETRIEVE = 4
    RETRIEVE_MULTIPLE = 5
    ASSOCIATE = 6
    DISASSOCIATE = 7


class ComponentType(IntEnum):
    ENTITY = 1
    ATTRIBUTE = 2
    RELATIONSHIP = 3
    OPTION_SET = 9
    ENTITY_RELATIONSHIP = 10
    SAVED_QUERY = 26
    WORKFLOW = 29
    SYSTEM_FORM = 60
    WEB_RESOURCE = 61
    PLUGIN_TYPE = 90
    PLUGIN_ASSEMBLY = 91
    SDK_MESSAGE_PROCESSING_STEP = 92
    SDK_MESSAGE_PROCESSING_STEP_IMAGE = 93


_LABELS = {
    Stage: {
        Stage.PRE_VALIDATION: "PreValidation",
        Stage.PRE_OPERATION: "PreOperation",
        Stage.MAIN_OPERATION: "MainOperation",
        Stage.POST_OPERATION: "PostOperation",
    },
    StepMode: {
        StepMode.SYNCHRONOUS: "Synchronous",
        StepMode.ASYNCHRONOUS: "Asynchronous",
    },
    StepStatus: {
        StepStatus.ENABLED: "Enabled",
        StepStatus.DISABLED: "Disabled",
    },
    Deployment: {
        Deployment.SERVER: "Server",
        Deployment.OFFLINE: "Offline",
        Deployment.BOTH: "Both",
    },
    IsolationMode: {
        IsolationMode.NONE: "None",
        IsolationMode.SANDBOX: "Sandbox",
        IsolationMode.EXTERNAL: "External",
    },
    ImageType: {
        ImageType.PRE_IMAGE: "PreImage",
        ImageType.POST_IMAGE: "PostImage",
        ImageType.BOTH: "Both",
    },
    OperationType: {
        OperationType.NONE: "None",
        OperationType.CREATE: "Create",
        OperationType.UPDATE: "Update",
        OperationType.DELETE: "Delete",
        OperationType.RETRIEVE: "Retrieve",
        OperationType.RETRIEVE_MULTIPLE: "RetrieveMultiple",
        OperationType.ASSOCIATE: "Associate",
        OperationType.DISASSOCIATE: "Disassociate",
    },
    ComponentType: {
        ComponentType.ENTITY: "Entity",
        ComponentType.ATTRIBUTE: "Attribute",
        ComponentType.RELATIONSHIP: "Relationship",
        ComponentType.OPTION_SET: "OptionSet",
        ComponentType.ENTITY_RELATIONSHIP: "EntityRelationship",
        ComponentType.SYSTEM_FORM: "SystemForm",
        ComponentType.WEB_RESOURCE: "WebResource",
        ComponentType.SAVED_QUERY: "SavedQuery",
        ComponentType.WORKFLOW: "Workflow",
        ComponentType.SDK_MESSAGE_PROCESSING_STEP_IMAGE: "SdkMessageProcessingStepImage",
        ComponentType.PLUGIN_TYPE: "PluginType",
        ComponentType.PLUGIN_ASSEMBLY: "PluginAssembly",
        ComponentType.SDK_MESSAGE_PROCESSING_STEP: "SdkMessageProcessingStep",
    },
}


def label(enum_cls: Type[IntEnum], code: Optional[int]) -> str:
    """Translate a raw code into its label, or "Unknown"."""
    if code is None:
        return UNKNOWN
    try:
        member = enum_cls(int(code))
    except (ValueError, TypeError):
        return UNKNOWN
    return _LABELS[enum_cls].get(member, UNKNOWN)


def stage_label(code: Optional[int]) -> str:
    return label(Stage, code)


def mode_label(code: Optional[int]) -> str:
    return label(StepMode, code)


def deployment_label(code: Optional[int]) -> str:
    return label(Deployment, code)


def isolation_label(code: Optional[int]) -> str:
    return label(IsolationMode, code)


def image_type_label(code: Optional[int]) -> str:
    return label(ImageType, code)


def operation_type_label(code: Optional[int]) -> str:
    return label(OperationType, code)


def component_type_label(code: Optional[int]) -> str:
    return label(ComponentType, code)
