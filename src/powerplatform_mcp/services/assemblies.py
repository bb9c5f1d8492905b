# src/powerplatform_mcp/services/assemblies.py
import logging
from typing import List

from powerplatform_mcp import odata
from powerplatform_mcp.enums import isolation_label
from powerplatform_mcp.errors import NotFoundError
from powerplatform_mcp.models import (
    Assembly,
    AssemblyListing,
    AssemblyRecord,
    PluginType,
    PluginTypeRecord,
    parse_rows,
)

logger = logging.getLogger(__name__)

ASSEMBLY_COLUMNS = [
    "pluginassemblyid",
    "name",
    "version",
    "culture",
    "publickeytoken",
    "isolationmode",
    "sourcetype",
    "major",
    "minor",
    "createdon",
    "modifiedon",
    "ismanaged",
    "ishidden",
]

PLUGIN_TYPE_COLUMNS = [
    "plugintypeid",
    "typename",
    "friendlyname",
    "name",
    "assemblyname",
    "description",
    "workflowactivitygroupname",
]


def to_assembly(record: AssemblyRecord) -> Assembly:
    return Assembly(
        plugin_assembly_id=record.id,
        name=record.name,
        version=record.version,
        isolation_mode=isolation_label(record.isolation_mode),
        is_managed=record.is_managed,
        modified_on=record.modified_on,
        modified_by=record.modified_by_name,
        major=record.major,
        minor=record.minor,
        description=record.description,
    )


def to_plugin_type(record: PluginTypeRecord) -> PluginType:
    return PluginType(
        plugin_type_id=record.id,
        type_name=record.type_name,
        friendly_name=record.friendly_name,
        name=record.name,
        assembly_name=record.assembly_name,
        description=record.description,
        workflow_activity_group_name=record.workflow_activity_group_name,
    )


class AssemblyCatalog:
    """Read access to registered plugin assemblies and their plugin types."""

    def __init__(self, client):
        self.client = client

    def list_assemblies(self, include_managed: bool = False, limit: int = 100) -> AssemblyListing:
        """
        List plugin assemblies ordered by name, hidden ones excluded.

        ``limit`` caps the rows returned by the platform. Hidden assemblies are
        dropped after the fetch, so fewer than ``limit`` results can come back
        even when more visible assemblies exist.
        """
        limit = odata.positive("limit", limit)
        rows = self.client.get_collection(
            "pluginassemblies",
            select=ASSEMBLY_COLUMNS,
            filter=None if include_managed else "ismanaged eq false",
            expand=["modifiedby($select=fullname)"],
            orderby="name",
            top=limit,
        )
        records = parse_rows(AssemblyRecord, rows)
        visible = [to_assembly(r) for r in records if not r.is_hidden]

        logger.debug(f"Listed {len(visible)} visible assemblies ({len(records) - len(visible)} hidden)")
        return AssemblyListing(total_count=len(visible), assemblies=visible)

    def get_assembly_by_name(self, name: str) -> Assembly:
        """Resolve one assembly by exact name; NotFoundError if it does not exist."""
        rows = self.client.get_collection(
            "pluginassemblies",
            select=ASSEMBLY_COLUMNS + ["description"],
            filter=odata.eq("name", name),
            expand=["modifiedby($select=fullname)"],
        )
        records = parse_rows(AssemblyRecord, rows)
        if not records:
            raise NotFoundError(f"Plugin assembly '{name}' not found")
        return to_assembly(records[0])

    def plugin_types_for_assembly(self, assembly_id: str) -> List[PluginType]:
        rows = self.client.get_collection(
            "plugintypes",
            select=PLUGIN_TYPE_COLUMNS,
            filter=f"_pluginassemblyid_value eq {odata.guid(assembly_id)}",
            follow_next_link=True,
        )
        return [to_plugin_type(r) for r in parse_rows(PluginTypeRecord, rows)]
