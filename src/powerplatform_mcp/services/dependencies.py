# src/powerplatform_mcp/services/dependencies.py
import logging
from typing import Any, Dict, List

from powerplatform_mcp import odata
from powerplatform_mcp.enums import component_type_label
from powerplatform_mcp.models import DeleteEligibility, DependencyEdge

logger = logging.getLogger(__name__)


def to_edge(entity: Dict[str, Any]) -> DependencyEdge:
    return DependencyEdge(
        dependent_component_object_id=entity.get("dependentcomponentobjectid"),
        dependent_component_type=entity.get("dependentcomponenttype"),
        dependent_component_type_name=component_type_label(entity.get("dependentcomponenttype")),
        required_component_object_id=entity.get("requiredcomponentobjectid"),
        required_component_type=entity.get("requiredcomponenttype"),
        required_component_type_name=component_type_label(entity.get("requiredcomponenttype")),
        dependency_type=entity.get("dependencytype"),
        attributes=entity,
    )


class DependencyChecker:
    """Read-only "what depends on this component" queries."""

    def __init__(self, client):
        self.client = client

    def check_dependencies(self, component_id: str, component_type: int) -> List[DependencyEdge]:
        """
        Components that would block deleting the given component.

        Args:
            component_id: GUID of the component
            component_type: Solution component type code (1=Entity, 91=PluginAssembly, ...)
        """
        result = self.client.post(
            "RetrieveDependenciesForDelete",
            {"ObjectId": odata.guid(component_id), "ComponentType": int(component_type)},
        )
        entities = (result.get("EntityCollection") or {}).get("Entities") or []
        return [to_edge(e) for e in entities]

    def check_delete_eligibility(self, component_id: str, component_type: int) -> DeleteEligibility:
        """
        Whether the component can be deleted.

        Any failure is reported as "cannot delete": we never claim a
        component is safe to remove without having seen its dependencies.
        """
        try:
            dependencies = self.check_dependencies(component_id, component_type)
        except Exception as e:
            logger.warning(
                f"Dependency check failed for {component_id} (type {component_type}), "
                f"assuming it cannot be deleted: {e}"
            )
            return DeleteEligibility(can_delete=False, dependencies=[])

        return DeleteEligibility(can_delete=not dependencies, dependencies=dependencies)
