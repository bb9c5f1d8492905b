# tests/test_prompts.py
from conftest import FakeClient
from powerplatform_mcp import prompts
from powerplatform_mcp.services import EntityService

ACCOUNT = "EntityDefinitions(LogicalName='account')"

METADATA = {
    "LogicalName": "account",
    "SchemaName": "Account",
    "EntitySetName": "accounts",
    "PrimaryIdAttribute": "accountid",
    "PrimaryNameAttribute": "name",
    "DisplayName": {"UserLocalizedLabel": {"Label": "Account"}},
    "Description": {"UserLocalizedLabel": None},
}

ATTRIBUTES = {
    "value": [
        {"@odata.type": "#Microsoft.Dynamics.CRM.StringAttributeMetadata", "LogicalName": "name"},
        {"@odata.type": "#Microsoft.Dynamics.CRM.MoneyAttributeMetadata", "LogicalName": "revenue"},
        {"LogicalName": "accountid"},
    ]
}

RELATIONSHIPS = {
    f"{ACCOUNT}/OneToManyRelationships": {
        "value": [
            {"SchemaName": "account_contacts", "ReferencedEntity": "account", "ReferencingEntity": "contact"},
            {"SchemaName": "account_parent_account", "ReferencedEntity": "account", "ReferencingEntity": "account"},
        ]
    },
    f"{ACCOUNT}/ManyToManyRelationships": {
        "value": [
            {"SchemaName": "accountleads_association", "Entity1LogicalName": "account", "Entity2LogicalName": "lead"},
        ]
    },
}


def service(**resources):
    return EntityService(FakeClient(resources=resources))


def test_entity_overview():
    svc = service(**{ACCOUNT: dict(METADATA), f"{ACCOUNT}/Attributes": ATTRIBUTES}, **RELATIONSHIPS)
    text = prompts.render_entity_overview(svc, "account")

    assert "## Power Platform Entity: account" in text
    assert "- Display Name: Account" in text
    assert "- Description: No description" in text
    assert "- revenue: #Microsoft.Dynamics.CRM.MoneyAttributeMetadata" in text
    assert "- accountid: Unknown type" in text
    assert "- One-to-Many Relationships: 2" in text
    assert "- Many-to-Many Relationships: 1" in text


def test_attribute_details():
    svc = service(
        **{
            f"{ACCOUNT}/Attributes(LogicalName='name')": {
                "AttributeType": "String",
                "MaxLength": 160,
                "RequiredLevel": {"Value": "ApplicationRequired"},
                "IsValidForAdvancedFind": {"Value": True},
            }
        }
    )
    text = prompts.render_attribute_details(svc, "account", "name")

    assert "## Attribute: name" in text
    assert "- Data Type: String" in text
    assert "- Required: ApplicationRequired" in text
    assert "- Max Length: 160" in text
    assert "- Display Name: name" in text


def test_query_template_uses_entity_set_and_primary_name():
    svc = service(**{ACCOUNT: dict(METADATA), f"{ACCOUNT}/Attributes": ATTRIBUTES})
    text = prompts.render_query_template(svc, "account")

    assert "## OData Query Template for accounts" in text
    assert "accounts?$select=name,revenue,accountid&$filter=name eq 'Example'&$orderby=name asc&$top=50" in text


def test_relationship_map():
    text = prompts.render_relationship_map(service(**RELATIONSHIPS), "account")

    assert "- account_contacts: account (1) → contact (N)" in text
    assert "- account_parent_account: account (1) → account (N)" in text
    assert "- accountleads_association: account (N) ↔ lead (N)" in text


def test_relationship_map_with_nothing_found():
    empty = {
        f"{ACCOUNT}/OneToManyRelationships": {"value": []},
        f"{ACCOUNT}/ManyToManyRelationships": {"value": []},
    }
    text = prompts.render_relationship_map(service(**empty), "account")
    assert text.count("None found") == 3
