# tests/test_pipeline.py
"""Tests for pipeline assembly by assembly name and by entity."""
import pytest

from conftest import FakeClient, guid, image_row, pipeline_step, step_row
from powerplatform_mcp.errors import NotFoundError, RemoteReadError
from powerplatform_mcp.services.pipeline import execution_order, group_by_message

ASSEMBLY = {
    "pluginassemblyid": guid(1),
    "name": "Contoso.Plugins",
    "version": "1.0.0.0",
    "isolationmode": 2,
    "ismanaged": False,
    "ishidden": False,
}


@pytest.fixture
def contoso_client():
    """Two plugin types; one registers a Create step and a bare Update step."""
    return FakeClient(
        tables={
            "pluginassemblies": [ASSEMBLY],
            "plugintypes": [
                {"plugintypeid": guid(11), "typename": "Contoso.Plugins.AccountPlugin"},
                {"plugintypeid": guid(12), "typename": "Contoso.Plugins.ContactPlugin"},
            ],
            "sdkmessageprocessingsteps": [
                step_row(22, "Contoso.Plugins.AccountPlugin: Update of account", "Update", 20, rank=2,
                         plugin_type=guid(11)),
                step_row(21, "Contoso.Plugins.AccountPlugin: Create of account", "Create", 20, rank=1,
                         plugin_type=guid(11)),
            ],
            "sdkmessageprocessingstepimages": [],
        }
    )


@pytest.fixture
def account_client():
    """Steps on account, seeded out of execution order."""
    return FakeClient(
        tables={
            "sdkmessageprocessingsteps": [
                step_row(3, "Create post", "Create", 40, plugin_type=guid(11)),
                step_row(2, "Update pre-op", "Update", 20, plugin_type=guid(11), filtering="name"),
                step_row(1, "Update pre-validation", "Update", 10, plugin_type=guid(12)),
            ],
            "plugintypes": [
                {"plugintypeid": guid(11), "pluginassemblyid": {"name": "Contoso.Plugins", "version": "1.0"}},
                {"plugintypeid": guid(12), "pluginassemblyid": {"name": "Contoso.Audit", "version": "2.1"}},
            ],
            "sdkmessageprocessingstepimages": [image_row(101, 2, image_type=0)],
        }
    )


class TestAssemblePipelineForAssembly:
    def test_update_step_is_flagged_create_step_is_not(self, contoso_client, assembler_for):
        result = assembler_for(contoso_client).assemble_for_assembly("Contoso.Plugins")
        update_name = "Contoso.Plugins.AccountPlugin: Update of account"

        assert result.assembly.name == "Contoso.Plugins"
        assert len(result.plugin_types) == 2
        assert [s.message for s in result.steps] == ["Create", "Update"]
        assert result.validation.steps_without_filtering_attributes == [update_name]
        assert result.validation.steps_without_images == [update_name]
        assert len(result.validation.potential_issues) == 2

    def test_steps_carry_owning_assembly(self, contoso_client, assembler_for):
        result = assembler_for(contoso_client).assemble_for_assembly("Contoso.Plugins")

        assert {s.assembly_name for s in result.steps} == {"Contoso.Plugins"}
        assert {s.assembly_version for s in result.steps} == {"1.0.0.0"}

    def test_steps_use_one_disjunctive_query(self, contoso_client, assembler_for):
        assembler_for(contoso_client).assemble_for_assembly("Contoso.Plugins")

        step_calls = contoso_client.calls_to("sdkmessageprocessingsteps")
        assert len(step_calls) == 1
        assert f"_plugintypeid_value eq {guid(11)} or _plugintypeid_value eq {guid(12)}" in (
            step_calls[0][2]["filter"]
        )
        assert len(contoso_client.calls_to("sdkmessageprocessingstepimages")) == 1

    def test_unknown_assembly_is_not_found(self, assembler_for):
        client = FakeClient(tables={"pluginassemblies": []})
        with pytest.raises(NotFoundError):
            assembler_for(client).assemble_for_assembly("Missing.Plugins")

    def test_assembly_without_plugin_types(self, assembler_for):
        client = FakeClient(tables={"pluginassemblies": [ASSEMBLY], "plugintypes": []})
        result = assembler_for(client).assemble_for_assembly("Contoso.Plugins")

        assert result.plugin_types == []
        assert result.steps == []
        assert result.validation.potential_issues == []
        assert client.calls_to("sdkmessageprocessingsteps") == []
        assert client.calls_to("sdkmessageprocessingstepimages") == []

    def test_payload_keys(self, contoso_client, assembler_for):
        payload = assembler_for(contoso_client).assemble_for_assembly("Contoso.Plugins").to_payload()

        assert set(payload) == {"assembly", "pluginTypes", "steps", "validation"}
        assert "stepsWithoutFilteringAttributes" in payload["validation"]
        assert "hasPreImage" in payload["steps"][0]


class TestAssemblePipelineForEntity:
    def test_execution_order_follows_stage_then_rank(self, account_client, assembler_for):
        result = assembler_for(account_client).assemble_for_entity("account")

        assert result.execution_order == ["Update pre-validation", "Update pre-op", "Create post"]

    def test_messages_are_grouped_by_stage(self, account_client, assembler_for):
        result = assembler_for(account_client).assemble_for_entity("account")
        by_message = {m.message_name: m.stages for m in result.messages}

        assert set(by_message) == {"Create", "Update"}
        assert [s.name for s in by_message["Update"].pre_validation] == ["Update pre-validation"]
        assert [s.name for s in by_message["Update"].pre_operation] == ["Update pre-op"]
        assert by_message["Update"].post_operation == []
        assert [s.name for s in by_message["Create"].post_operation] == ["Create post"]

    def test_every_grouped_step_appears_in_steps(self, account_client, assembler_for):
        result = assembler_for(account_client).assemble_for_entity("account")
        grouped = [s for m in result.messages for s in m.stages.all_steps()]

        assert len(grouped) == len(result.steps)
        assert {s.step_id for s in grouped} == {s.step_id for s in result.steps}

    def test_assemblies_and_images_are_attached(self, account_client, assembler_for):
        result = assembler_for(account_client).assemble_for_entity("account")
        steps = {s.name: s for s in result.steps}

        assert steps["Update pre-validation"].assembly_name == "Contoso.Audit"
        assert steps["Update pre-op"].assembly_version == "1.0"
        assert steps["Update pre-op"].has_pre_image
        assert steps["Update pre-validation"].images == []
        assert len(account_client.calls_to("plugintypes")) == 1

    def test_validation_is_included(self, account_client, assembler_for):
        result = assembler_for(account_client).assemble_for_entity("account")

        assert result.validation.steps_without_filtering_attributes == ["Update pre-validation"]
        assert result.validation.steps_without_images == ["Update pre-validation"]

    def test_message_filter_is_applied(self, account_client, assembler_for):
        assembler_for(account_client).assemble_for_entity("account", message_filter="Update")

        _, _, options = account_client.calls_to("sdkmessageprocessingsteps")[0]
        assert "sdkmessageid/name eq 'Update'" in options["filter"]

    def test_unknown_entity_has_empty_pipeline(self, assembler_for):
        client = FakeClient(tables={"sdkmessageprocessingsteps": []})
        result = assembler_for(client).assemble_for_entity("nonexistent_entity")

        assert result.messages == []
        assert result.steps == []
        assert result.execution_order == []
        assert client.calls_to("plugintypes") == []
        assert client.calls_to("sdkmessageprocessingstepimages") == []

    def test_assembling_twice_gives_same_result(self, account_client, assembler_for):
        assembler = assembler_for(account_client)
        first = assembler.assemble_for_entity("account").to_payload()
        second = assembler.assemble_for_entity("account").to_payload()
        assert first == second

    def test_failed_fetch_aborts(self, account_client, assembler_for):
        account_client.tables["sdkmessageprocessingstepimages"] = RemoteReadError("boom")
        with pytest.raises(RemoteReadError):
            assembler_for(account_client).assemble_for_entity("account")

    def test_equal_rank_keeps_platform_order(self, assembler_for):
        client = FakeClient(
            tables={
                "sdkmessageprocessingsteps": [
                    step_row(2, "B", "Update", 20, rank=1, filtering="name"),
                    step_row(1, "A", "Update", 20, rank=1, filtering="name"),
                ],
                "sdkmessageprocessingstepimages": [],
            }
        )
        result = assembler_for(client).assemble_for_entity("account")

        assert result.execution_order == ["B", "A"]
        [update] = result.messages
        assert [s.name for s in update.stages.pre_operation] == ["B", "A"]


class TestGrouping:
    def test_steps_without_message_or_pipeline_stage_are_not_grouped(self):
        steps = [
            pipeline_step("Main op", message="Create", stage=30),
            pipeline_step("No message", message=None, stage=20),
            pipeline_step("Pre-op", message="Create", stage=20),
        ]
        groups = group_by_message(steps)

        assert len(groups) == 1
        assert [s.name for s in groups[0].stages.all_steps()] == ["Pre-op"]
        assert execution_order(steps) == ["Main op", "No message", "Pre-op"]
