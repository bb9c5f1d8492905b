# src/powerplatform_mcp/services/steps.py
"""
StepAggregator: fetches SDK message processing steps and enriches them.

Steps always come back ordered by (stage, rank) from the Web API and are
never re-sorted here. The platform's tie-breaking for equal ranks is what
actually executes, and a local sort could disagree with it.
"""
import logging
from typing import Dict, Iterable, List, Mapping, Optional

from powerplatform_mcp import odata
from powerplatform_mcp.enums import StepStatus, deployment_label, mode_label, stage_label
from powerplatform_mcp.models import (
    AssemblyRef,
    PipelineStep,
    PluginTypeRecord,
    StepRecord,
    parse_rows,
)

logger = logging.getLogger(__name__)

STEP_COLUMNS = [
    "sdkmessageprocessingstepid",
    "name",
    "stage",
    "mode",
    "rank",
    "statuscode",
    "asyncautodelete",
    "filteringattributes",
    "supporteddeployment",
    "configuration",
    "description",
    "invocationsource",
    "_plugintypeid_value",
    "_sdkmessagefilterid_value",
    "_impersonatinguserid_value",
]

STEP_EXPANSIONS = [
    "sdkmessageid($select=name)",
    "plugintypeid($select=typename)",
    "impersonatinguserid($select=fullname)",
    "sdkmessagefilterid($select=primaryobjecttypecode)",
]

EXECUTION_ORDER = "stage,rank"
ENABLED_ONLY = f"statuscode eq {int(StepStatus.ENABLED)}"


def split_attributes(value: Optional[str]) -> List[str]:
    """Comma-joined attribute list -> names. Empty/None -> []."""
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


class StepAggregator:
    def __init__(self, client):
        self.client = client

    def _fetch(self, filter: str) -> List[StepRecord]:
        rows = self.client.get_collection(
            "sdkmessageprocessingsteps",
            select=STEP_COLUMNS,
            filter=filter,
            expand=STEP_EXPANSIONS,
            orderby=EXECUTION_ORDER,
            follow_next_link=True,
        )
        return parse_rows(StepRecord, rows)

    def steps_for_plugin_types(
        self, plugin_type_ids: Iterable[str], include_disabled: bool = False
    ) -> List[StepRecord]:
        """All steps registered by the given plugin types, in execution order."""
        type_filter = odata.any_of("_plugintypeid_value", plugin_type_ids)
        if type_filter is None:
            return []
        steps = self._fetch(odata.all_of(type_filter, None if include_disabled else ENABLED_ONLY))
        logger.debug(f"Fetched {len(steps)} steps for plugin types")
        return steps

    def steps_for_entity(
        self,
        entity_name: str,
        message_name: Optional[str] = None,
        include_disabled: bool = False,
    ) -> List[StepRecord]:
        """All steps triggered on an entity, optionally narrowed to one message."""
        steps = self._fetch(
            odata.all_of(
                odata.eq("sdkmessagefilterid/primaryobjecttypecode", entity_name),
                None if include_disabled else ENABLED_ONLY,
                odata.eq("sdkmessageid/name", message_name) if message_name else None,
            )
        )
        logger.debug(f"Fetched {len(steps)} steps for entity '{entity_name}'")
        return steps

    def resolve_assemblies(self, plugin_type_ids: Iterable[str]) -> Dict[str, AssemblyRef]:
        """
        Map each distinct plugin type id to its owning assembly's name/version.

        One disjunctive query covers the whole id set; repeated ids are only
        looked up once.
        """
        distinct = list(dict.fromkeys(i for i in plugin_type_ids if i))
        type_filter = odata.any_of("plugintypeid", distinct)
        if type_filter is None:
            return {}

        rows = self.client.get_collection(
            "plugintypes",
            select=["plugintypeid"],
            filter=type_filter,
            expand=["pluginassemblyid($select=name,version)"],
            follow_next_link=True,
        )
        resolved = {
            r.id: r.assembly for r in parse_rows(PluginTypeRecord, rows) if r.id and r.assembly
        }
        logger.debug(f"Resolved assemblies for {len(resolved)}/{len(distinct)} plugin types")
        return resolved

    def enrich(
        self,
        steps: Iterable[StepRecord],
        assemblies: Mapping[str, AssemblyRef],
    ) -> List[PipelineStep]:
        """Attach labels and owning assembly; images are bound separately."""
        enriched = []
        for step in steps:
            assembly = assemblies.get(step.plugin_type_id) if step.plugin_type_id else None
            enriched.append(
                PipelineStep(
                    step_id=step.id,
                    name=step.name,
                    stage=step.stage,
                    stage_name=stage_label(step.stage),
                    mode=step.mode,
                    mode_name=mode_label(step.mode),
                    rank=step.rank,
                    message=step.message_name,
                    primary_entity=step.primary_entity,
                    plugin_type_id=step.plugin_type_id,
                    plugin_type=step.plugin_type_name,
                    assembly_name=assembly.name if assembly else None,
                    assembly_version=assembly.version if assembly else None,
                    filtering_attributes=split_attributes(step.filtering_attributes),
                    status_code=step.status_code,
                    enabled=step.status_code == StepStatus.ENABLED,
                    deployment=deployment_label(step.supported_deployment),
                    impersonating_user=step.impersonating_user_name,
                    description=step.description,
                    configuration=step.configuration,
                )
            )
        return enriched
