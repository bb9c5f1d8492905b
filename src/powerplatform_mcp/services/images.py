# src/powerplatform_mcp/services/images.py
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping

from powerplatform_mcp import odata
from powerplatform_mcp.enums import image_type_label
from powerplatform_mcp.models import ImageRecord, PipelineStep, StepImage, parse_rows
from powerplatform_mcp.services.steps import split_attributes

logger = logging.getLogger(__name__)

IMAGE_COLUMNS = [
    "sdkmessageprocessingstepimageid",
    "name",
    "imagetype",
    "messagepropertyname",
    "entityalias",
    "attributes",
    "_sdkmessageprocessingstepid_value",
]


class ImageBinder:
    """Fetches step images in one query and joins them onto their steps."""

    def __init__(self, client):
        self.client = client

    def fetch_images(self, step_ids: Iterable[str]) -> Dict[str, List[StepImage]]:
        """Images for the given steps, keyed by owning step id."""
        step_filter = odata.any_of("_sdkmessageprocessingstepid_value", [i for i in step_ids if i])
        if step_filter is None:
            return {}

        rows = self.client.get_collection(
            "sdkmessageprocessingstepimages",
            select=IMAGE_COLUMNS,
            filter=step_filter,
            follow_next_link=True,
        )
        by_step: Dict[str, List[StepImage]] = defaultdict(list)
        for record in parse_rows(ImageRecord, rows):
            by_step[record.step_id].append(
                StepImage(
                    image_id=record.id,
                    name=record.name,
                    image_type=record.image_type,
                    image_type_name=image_type_label(record.image_type),
                    message_property_name=record.message_property_name,
                    entity_alias=record.entity_alias,
                    attributes=split_attributes(record.attributes),
                    step_id=record.step_id,
                )
            )
        logger.debug(f"Fetched {sum(len(v) for v in by_step.values())} images for {len(by_step)} steps")
        return dict(by_step)

    @staticmethod
    def bind(
        steps: Iterable[PipelineStep], images_by_step: Mapping[str, List[StepImage]]
    ) -> List[PipelineStep]:
        """Equality join image.step_id == step.step_id. Steps without images get []."""
        return [
            step.model_copy(update={"images": list(images_by_step.get(step.step_id, []))})
            for step in steps
        ]

    def bind_images(self, steps: Iterable[PipelineStep]) -> List[PipelineStep]:
        steps = list(steps)
        if not steps:
            return []
        return self.bind(steps, self.fetch_images(s.step_id for s in steps))
