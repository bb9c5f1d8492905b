# src/powerplatform_mcp/services/entities.py
"""Entity definitions: metadata, attributes and relationships."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from powerplatform_mcp import odata

logger = logging.getLogger(__name__)

ONE_TO_MANY_COLUMNS = [
    "SchemaName",
    "RelationshipType",
    "ReferencedAttribute",
    "ReferencedEntity",
    "ReferencingAttribute",
    "ReferencingEntity",
    "ReferencedEntityNavigationPropertyName",
    "ReferencingEntityNavigationPropertyName",
]

MANY_TO_MANY_COLUMNS = [
    "SchemaName",
    "RelationshipType",
    "Entity1LogicalName",
    "Entity2LogicalName",
    "Entity1IntersectAttribute",
    "Entity2IntersectAttribute",
    "Entity1NavigationPropertyName",
    "Entity2NavigationPropertyName",
]

# Relationships into solution-internal tables that only add noise
NOISY_ENTITY_PREFIXES = ("msdyn_", "adx_")


def _definition(entity_name: str) -> str:
    return f"EntityDefinitions(LogicalName={odata.literal(entity_name)})"


def drop_shadow_attributes(attributes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Remove generated companion attributes.

    Drops ``*yominame`` phonetic fields, and ``<base>name`` display fields
    whenever ``<base>`` itself is present (e.g. ``parentaccountidname``).
    """
    attributes = [
        a for a in attributes if not (a.get("LogicalName") or "").endswith("yominame")
    ]

    base_names = set()
    name_attributes = {}
    for attribute in attributes:
        logical_name = attribute.get("LogicalName") or ""
        if logical_name.endswith("name") and len(logical_name) > 4:
            name_attributes[logical_name[:-4]] = attribute
        else:
            base_names.add(logical_name)

    shadowed = {id(a) for base, a in name_attributes.items() if base in base_names}
    return [a for a in attributes if id(a) not in shadowed]


class EntityService:
    def __init__(self, client, max_workers: int = 2):
        self.client = client
        self.max_workers = max_workers

    def get_entity_metadata(self, entity_name: str) -> Dict[str, Any]:
        metadata = self.client.get(_definition(entity_name))
        # Privileges are large and irrelevant for schema questions
        metadata.pop("Privileges", None)
        return metadata

    def get_entity_attributes(self, entity_name: str) -> Dict[str, Any]:
        response = self.client.get(
            f"{_definition(entity_name)}/Attributes",
            params=odata.build_query(select=["LogicalName"], filter="AttributeType ne 'Virtual'"),
        )
        if response.get("value") is not None:
            response["value"] = drop_shadow_attributes(response["value"])
        return response

    def get_entity_attribute(self, entity_name: str, attribute_name: str) -> Dict[str, Any]:
        return self.client.get(
            f"{_definition(entity_name)}/Attributes(LogicalName={odata.literal(attribute_name)})"
        )

    def get_entity_one_to_many_relationships(self, entity_name: str) -> Dict[str, Any]:
        # startswith is not supported on this collection, so prefixes are filtered locally
        response = self.client.get(
            f"{_definition(entity_name)}/OneToManyRelationships",
            params=odata.build_query(
                select=ONE_TO_MANY_COLUMNS,
                filter="ReferencingAttribute ne 'regardingobjectid'",
            ),
        )
        if response.get("value") is not None:
            response["value"] = [
                r
                for r in response["value"]
                if not (r.get("ReferencingEntity") or "").startswith(NOISY_ENTITY_PREFIXES)
            ]
        return response

    def get_entity_many_to_many_relationships(self, entity_name: str) -> Dict[str, Any]:
        return self.client.get(
            f"{_definition(entity_name)}/ManyToManyRelationships",
            params=odata.build_query(select=MANY_TO_MANY_COLUMNS),
        )

    def get_entity_relationships(self, entity_name: str) -> Dict[str, Dict[str, Any]]:
        """One-to-many and many-to-many relationships, fetched concurrently."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            one_to_many = executor.submit(self.get_entity_one_to_many_relationships, entity_name)
            many_to_many = executor.submit(self.get_entity_many_to_many_relationships, entity_name)
            return {
                "oneToMany": one_to_many.result(),
                "manyToMany": many_to_many.result(),
            }
