# src/powerplatform_mcp/mcp_server.py
import json
import logging
from typing import Any, Callable, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.prompts import base

from powerplatform_mcp import prompts
from powerplatform_mcp.context import get_context
from powerplatform_mcp.errors import PowerPlatformError

# Initialize the Server
mcp = FastMCP("powerplatform-mcp")

logger = logging.getLogger(__name__)


def _to_json(payload: Any) -> str:
    if hasattr(payload, "to_payload"):
        payload = payload.to_payload()
    return json.dumps(payload, indent=2)


def _respond(action: str, fetch: Callable[[], Any]) -> str:
    """
    Run a tool body and serialize its result.

    Failures come back as ``{"error": "Failed to <action>: ...", "kind": ...}``
    so clients can tell a missing component from a broken connection.
    """
    try:
        return _to_json(fetch())
    except PowerPlatformError as e:
        logger.error(f"Failed to {action}: {e}")
        return json.dumps({"error": f"Failed to {action}: {e}", "kind": e.kind})
    except Exception as e:
        logger.exception(f"Unexpected error while trying to {action}")
        return json.dumps({"error": f"Failed to {action}: {e}", "kind": PowerPlatformError.kind})


# --- ENTITY METADATA ---


@mcp.tool(name="get-entity-metadata")
def get_entity_metadata(entity_name: str) -> str:
    """Get metadata about a PowerPlatform entity (logical name, e.g. 'account')."""
    return _respond(
        f"get entity metadata for '{entity_name}'",
        lambda: get_context().entities.get_entity_metadata(entity_name),
    )


@mcp.tool(name="get-entity-attributes")
def get_entity_attributes(entity_name: str) -> str:
    """Get the attributes/fields of a PowerPlatform entity."""
    return _respond(
        f"get attributes for '{entity_name}'",
        lambda: get_context().entities.get_entity_attributes(entity_name),
    )


@mcp.tool(name="get-entity-attribute")
def get_entity_attribute(entity_name: str, attribute_name: str) -> str:
    """Get a specific attribute/field of a PowerPlatform entity."""
    return _respond(
        f"get attribute '{attribute_name}' of '{entity_name}'",
        lambda: get_context().entities.get_entity_attribute(entity_name, attribute_name),
    )


@mcp.tool(name="get-entity-relationships")
def get_entity_relationships(entity_name: str) -> str:
    """Get the one-to-many and many-to-many relationships of a PowerPlatform entity."""
    return _respond(
        f"get relationships for '{entity_name}'",
        lambda: get_context().entities.get_entity_relationships(entity_name),
    )


@mcp.tool(name="get-global-option-set")
def get_global_option_set(option_set_name: str) -> str:
    """Get a global option set definition by name."""
    return _respond(
        f"get global option set '{option_set_name}'",
        lambda: get_context().option_sets.get_global_option_set(option_set_name),
    )


# --- RECORDS ---


@mcp.tool(name="get-record")
def get_record(entity_name_plural: str, record_id: str) -> str:
    """
    Get a single record by id.

    Args:
        entity_name_plural: Entity set name (e.g. 'accounts')
        record_id: Record GUID
    """
    return _respond(
        f"get record {record_id} from '{entity_name_plural}'",
        lambda: get_context().records.get_record(entity_name_plural, record_id),
    )


@mcp.tool(name="query-records")
def query_records(
    entity_name_plural: str,
    filter: str,
    max_records: int = 50,
    orderby: Optional[str] = None,
) -> str:
    """
    Query records with an OData filter expression.

    Args:
        entity_name_plural: Entity set name (e.g. 'accounts')
        filter: OData filter (e.g. "name eq 'Contoso'")
        max_records: Maximum number of records to return
        orderby: OData orderby expression (e.g. "createdon desc")
    """
    return _respond(
        f"query records from '{entity_name_plural}'",
        lambda: get_context().records.query_records(
            entity_name_plural, filter, limit=max_records, orderby=orderby
        ),
    )


# --- PLUGIN PIPELINE ---


@mcp.tool(name="get-plugin-assemblies")
def get_plugin_assemblies(include_managed: bool = False, max_records: int = 100) -> str:
    """List plugin assemblies, excluding managed and hidden ones unless asked."""
    return _respond(
        "get plugin assemblies",
        lambda: get_context().assemblies.list_assemblies(
            include_managed=include_managed, limit=max_records
        ),
    )


@mcp.tool(name="get-plugin-assembly-complete")
def get_plugin_assembly_complete(assembly_name: str, include_disabled: bool = False) -> str:
    """
    Full registration of one plugin assembly: plugin types, steps with images,
    and a validation report of likely misconfigurations.
    """
    return _respond(
        f"get plugin assembly '{assembly_name}'",
        lambda: get_context().pipeline.assemble_for_assembly(
            assembly_name, include_disabled=include_disabled
        ),
    )


@mcp.tool(name="get-entity-plugin-pipeline")
def get_entity_plugin_pipeline(
    entity_name: str,
    message_filter: Optional[str] = None,
    include_disabled: bool = False,
) -> str:
    """
    Every plugin step that fires on an entity, grouped by message and stage
    in execution order.

    Args:
        entity_name: Entity logical name (e.g. 'account')
        message_filter: Restrict to one message (e.g. 'Update')
        include_disabled: Include disabled steps
    """
    return _respond(
        f"get plugin pipeline for '{entity_name}'",
        lambda: get_context().pipeline.assemble_for_entity(
            entity_name, message_filter=message_filter, include_disabled=include_disabled
        ),
    )


@mcp.tool(name="get-plugin-trace-logs")
def get_plugin_trace_logs(
    entity_name: Optional[str] = None,
    message_name: Optional[str] = None,
    correlation_id: Optional[str] = None,
    plugin_step_id: Optional[str] = None,
    exception_only: bool = False,
    hours_back: float = 24,
    max_records: int = 50,
) -> str:
    """Recent plugin trace logs, newest first, with parsed exception details."""
    return _respond(
        "get plugin trace logs",
        lambda: get_context().trace_logs.query_logs(
            entity_name=entity_name,
            message_name=message_name,
            correlation_id=correlation_id,
            plugin_step_id=plugin_step_id,
            exception_only=exception_only,
            hours_back=hours_back,
            limit=max_records,
        ),
    )


# --- DEPENDENCIES ---


@mcp.tool(name="check-component-dependencies")
def check_component_dependencies(component_id: str, component_type: int) -> str:
    """
    Components that depend on the given component.

    Args:
        component_id: Component GUID
        component_type: Solution component type code (91 = plugin assembly,
            92 = SDK message processing step)
    """

    def fetch():
        edges = get_context().dependencies.check_dependencies(component_id, component_type)
        return {"dependencies": [e.to_payload() for e in edges]}

    return _respond(f"check dependencies for {component_id}", fetch)


@mcp.tool(name="check-delete-eligibility")
def check_delete_eligibility(component_id: str, component_type: int) -> str:
    """Whether a component can be deleted, with the blocking dependencies."""
    return _respond(
        f"check delete eligibility for {component_id}",
        lambda: get_context().dependencies.check_delete_eligibility(component_id, component_type),
    )


# --- PROMPTS ---


def _prompt(name: str, render: Callable[[], str]) -> list[base.Message]:
    try:
        return [base.AssistantMessage(render())]
    except Exception as e:
        logger.error(f"Error handling {name} prompt: {e}")
        return [base.AssistantMessage(f"Error: {e}")]


@mcp.prompt(name="entity-overview", description="Get an overview of a Power Platform entity")
def entity_overview(entity_name: str) -> list[base.Message]:
    return _prompt(
        "entity-overview",
        lambda: prompts.render_entity_overview(get_context().entities, entity_name),
    )


@mcp.prompt(
    name="attribute-details",
    description="Get detailed information about a specific entity attribute/field",
)
def attribute_details(entity_name: str, attribute_name: str) -> list[base.Message]:
    return _prompt(
        "attribute-details",
        lambda: prompts.render_attribute_details(
            get_context().entities, entity_name, attribute_name
        ),
    )


@mcp.prompt(name="query-template", description="Get a template for querying a Power Platform entity")
def query_template(entity_name: str) -> list[base.Message]:
    return _prompt(
        "query-template",
        lambda: prompts.render_query_template(get_context().entities, entity_name),
    )


@mcp.prompt(
    name="relationship-map", description="Get a list of relationships for a Power Platform entity"
)
def relationship_map(entity_name: str) -> list[base.Message]:
    return _prompt(
        "relationship-map",
        lambda: prompts.render_relationship_map(get_context().entities, entity_name),
    )


if __name__ == "__main__":
    mcp.run()
