# src/powerplatform_mcp/services/pipeline.py
"""
PipelineAssembler: joins assemblies, plugin types, steps and images into
"what runs, in what order" views.

Assembly view:  assembly -> plugin types -> steps -> images -> validation
Entity view:    steps -> (assemblies || images) -> group -> validation

Any failed fetch aborts the whole operation; no partial pipeline is returned.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from powerplatform_mcp.enums import Stage
from powerplatform_mcp.models import (
    AssemblyPipeline,
    AssemblyRef,
    EntityPipeline,
    MessagePipeline,
    PipelineStep,
)
from powerplatform_mcp.services.assemblies import AssemblyCatalog
from powerplatform_mcp.services.images import ImageBinder
from powerplatform_mcp.services.steps import StepAggregator
from powerplatform_mcp.services.validation import PipelineValidator

logger = logging.getLogger(__name__)

_BUCKETS = {
    Stage.PRE_VALIDATION: "pre_validation",
    Stage.PRE_OPERATION: "pre_operation",
    Stage.POST_OPERATION: "post_operation",
}


def group_by_message(steps: Sequence[PipelineStep]) -> List[MessagePipeline]:
    """
    Bucket steps by (message, stage) in a single pass.

    Input order is preserved inside each bucket. Steps with no resolved
    message, or with a stage outside the three pipeline stages, are left out
    of every group.
    """
    groups: Dict[str, MessagePipeline] = {}
    for step in steps:
        bucket = _BUCKETS.get(step.stage)
        if not step.message or bucket is None:
            continue
        group = groups.get(step.message)
        if group is None:
            group = groups[step.message] = MessagePipeline(message_name=step.message)
        getattr(group.stages, bucket).append(step)
    return list(groups.values())


def execution_order(steps: Sequence[PipelineStep]) -> List[Optional[str]]:
    """Names of every step in the result set, in stage-then-rank order."""
    return [step.name for step in steps]


class PipelineAssembler:
    def __init__(
        self,
        catalog: AssemblyCatalog,
        steps: StepAggregator,
        images: ImageBinder,
        validator: Optional[PipelineValidator] = None,
        max_workers: int = 4,
    ):
        self.catalog = catalog
        self.steps = steps
        self.images = images
        self.validator = validator or PipelineValidator()
        self.max_workers = max_workers

    def assemble_for_assembly(
        self, assembly_name: str, include_disabled: bool = False
    ) -> AssemblyPipeline:
        """
        Everything one assembly registers: its plugin types, their steps with
        bound images, and the validation report.

        Raises:
            NotFoundError: If no assembly has that name
        """
        assembly = self.catalog.get_assembly_by_name(assembly_name)
        plugin_types = self.catalog.plugin_types_for_assembly(assembly.plugin_assembly_id)

        records = self.steps.steps_for_plugin_types(
            [pt.plugin_type_id for pt in plugin_types], include_disabled=include_disabled
        )
        # Every step here belongs to this assembly, no per-type lookup needed
        owner = AssemblyRef(name=assembly.name, version=assembly.version)
        enriched = self.steps.enrich(records, {pt.plugin_type_id: owner for pt in plugin_types})
        steps = self.images.bind_images(enriched)

        logger.info(
            f"Assembled '{assembly_name}': {len(plugin_types)} plugin types, {len(steps)} steps"
        )
        return AssemblyPipeline(
            assembly=assembly,
            plugin_types=plugin_types,
            steps=steps,
            validation=self.validator.validate(steps),
        )

    def assemble_for_entity(
        self,
        entity_name: str,
        message_filter: Optional[str] = None,
        include_disabled: bool = False,
    ) -> EntityPipeline:
        """Every step that fires on an entity, grouped by message and stage."""
        records = self.steps.steps_for_entity(
            entity_name, message_name=message_filter, include_disabled=include_disabled
        )

        # Assembly resolution and image fetch only depend on the step set
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            assemblies_future = executor.submit(
                self.steps.resolve_assemblies, [r.plugin_type_id for r in records]
            )
            images_future = executor.submit(self.images.fetch_images, [r.id for r in records])
            assemblies = assemblies_future.result()
            images_by_step = images_future.result()

        steps = self.images.bind(self.steps.enrich(records, assemblies), images_by_step)
        messages = group_by_message(steps)

        logger.info(
            f"Assembled pipeline for '{entity_name}': {len(steps)} steps across {len(messages)} messages"
        )
        return EntityPipeline(
            entity=entity_name,
            messages=messages,
            steps=steps,
            execution_order=execution_order(steps),
            validation=self.validator.validate(steps),
        )
