# src/powerplatform_mcp/prompts.py
"""
Markdown prompt renderers built from live entity metadata.

Each renderer takes an EntityService and returns the prompt text. The MCP
layer wraps the text in an assistant message.
"""
from typing import Any, Dict, List, Optional

ENTITY_OVERVIEW = """## Power Platform Entity: {entity}

This is an overview of the '{entity}' entity in Microsoft Power Platform/Dataverse:

### Entity Details
{entity_details}

### Attributes
{key_attributes}

### Relationships
{relationships}

You can query this entity using OData filters against its entity set.
"""

ATTRIBUTE_DETAILS = """## Attribute: {attribute}

Details for the '{attribute}' attribute of the '{entity}' entity:

{attribute_details}

### Usage Notes
- Data Type: {data_type}
- Required: {required}
- Max Length: {max_length}
"""

QUERY_TEMPLATE = """## OData Query Template for {entity_set}

Use this template to build queries against the {entity_set} entity set:

```
{entity_set}?$select={selected_fields}&$filter={filter_conditions}&$orderby={order_by}&$top={max_records}
```

### Common Filter Examples
- Equals: `name eq 'Contoso'`
- Contains: `contains(name, 'Contoso')`
- Greater than date: `createdon gt 2023-01-01T00:00:00Z`
- Multiple conditions: `name eq 'Contoso' and statecode eq 0`
"""

RELATIONSHIP_MAP = """## Relationship Map for {entity}

Relationships involving the '{entity}' entity:

### One-to-Many Relationships ({entity} as Primary)
{one_to_many_primary}

### One-to-Many Relationships ({entity} as Related)
{one_to_many_related}

### Many-to-Many Relationships
{many_to_many}
"""

NONE_FOUND = "None found"
QUERY_SAMPLE_FIELDS = 5


def _label(metadata: Dict[str, Any], key: str) -> Optional[str]:
    """Localized label, e.g. DisplayName.UserLocalizedLabel.Label."""
    localized = (metadata.get(key) or {}).get("UserLocalizedLabel") or {}
    return localized.get("Label")


def _bullets(lines: List[str]) -> str:
    return "\n".join(lines) or NONE_FOUND


def render_entity_overview(service, entity_name: str) -> str:
    metadata = service.get_entity_metadata(entity_name)
    attributes = service.get_entity_attributes(entity_name).get("value") or []
    relationships = service.get_entity_relationships(entity_name)

    entity_details = "\n".join([
        f"- Display Name: {_label(metadata, 'DisplayName') or entity_name}",
        f"- Schema Name: {metadata.get('SchemaName')}",
        f"- Description: {_label(metadata, 'Description') or 'No description'}",
        f"- Primary Key: {metadata.get('PrimaryIdAttribute')}",
        f"- Primary Name: {metadata.get('PrimaryNameAttribute')}",
    ])
    key_attributes = _bullets([
        f"- {a.get('LogicalName')}: {a.get('@odata.type') or 'Unknown type'}" for a in attributes
    ])
    one_to_many = relationships["oneToMany"].get("value") or []
    many_to_many = relationships["manyToMany"].get("value") or []
    summary = (
        f"- One-to-Many Relationships: {len(one_to_many)}\n"
        f"- Many-to-Many Relationships: {len(many_to_many)}"
    )

    return ENTITY_OVERVIEW.format(
        entity=entity_name,
        entity_details=entity_details,
        key_attributes=key_attributes,
        relationships=summary,
    )


def render_attribute_details(service, entity_name: str, attribute_name: str) -> str:
    attribute = service.get_entity_attribute(entity_name, attribute_name)
    required = (attribute.get("RequiredLevel") or {}).get("Value") or "No"

    details = "\n".join([
        f"- Display Name: {_label(attribute, 'DisplayName') or attribute_name}",
        f"- Description: {_label(attribute, 'Description') or 'No description'}",
        f"- Type: {attribute.get('AttributeType')}",
        f"- Format: {attribute.get('Format') or 'N/A'}",
        f"- Is Required: {required}",
        f"- Is Searchable: {bool(attribute.get('IsValidForAdvancedFind'))}",
    ])
    return ATTRIBUTE_DETAILS.format(
        entity=entity_name,
        attribute=attribute_name,
        attribute_details=details,
        data_type=attribute.get("AttributeType"),
        required=required,
        max_length=attribute.get("MaxLength") or "N/A",
    )


def render_query_template(service, entity_name: str) -> str:
    metadata = service.get_entity_metadata(entity_name)
    attributes = service.get_entity_attributes(entity_name).get("value") or []

    # Only LogicalName is selected, so IsValidForRead is usually absent
    readable = [
        a.get("LogicalName")
        for a in attributes
        if a.get("IsValidForRead", True) is not False and not a.get("AttributeOf")
    ]
    primary_name = metadata.get("PrimaryNameAttribute")

    return QUERY_TEMPLATE.format(
        entity_set=metadata.get("EntitySetName") or entity_name,
        selected_fields=",".join(readable[:QUERY_SAMPLE_FIELDS]),
        filter_conditions=f"{primary_name} eq 'Example'",
        order_by=f"{primary_name} asc",
        max_records=50,
    )


def render_relationship_map(service, entity_name: str) -> str:
    relationships = service.get_entity_relationships(entity_name)
    one_to_many = relationships["oneToMany"].get("value") or []
    many_to_many = relationships["manyToMany"].get("value") or []

    primary = [
        f"- {r.get('SchemaName')}: {entity_name} (1) → {r.get('ReferencingEntity')} (N)"
        for r in one_to_many
        if r.get("ReferencingEntity") != entity_name
    ]
    related = [
        f"- {r.get('SchemaName')}: {r.get('ReferencedEntity')} (1) → {entity_name} (N)"
        for r in one_to_many
        if r.get("ReferencingEntity") == entity_name
    ]
    peers = []
    for r in many_to_many:
        other = (
            r.get("Entity2LogicalName")
            if r.get("Entity1LogicalName") == entity_name
            else r.get("Entity1LogicalName")
        )
        peers.append(f"- {r.get('SchemaName')}: {entity_name} (N) ↔ {other} (N)")

    return RELATIONSHIP_MAP.format(
        entity=entity_name,
        one_to_many_primary=_bullets(primary),
        one_to_many_related=_bullets(related),
        many_to_many=_bullets(peers),
    )
