# tests/test_steps.py
from conftest import FakeClient, guid, step_row
from powerplatform_mcp.models import AssemblyRef
from powerplatform_mcp.services import StepAggregator
from powerplatform_mcp.services.steps import split_attributes


class TestSplitAttributes:
    def test_splits_and_trims(self):
        assert split_attributes("name, telephone1 ,") == ["name", "telephone1"]

    def test_empty_values(self):
        assert split_attributes(None) == []
        assert split_attributes("") == []


class TestStepQueries:
    def test_no_plugin_types_means_no_request(self):
        client = FakeClient()
        assert StepAggregator(client).steps_for_plugin_types([]) == []
        assert client.calls == []

    def test_plugin_type_steps_are_enabled_only_by_default(self):
        client = FakeClient(tables={"sdkmessageprocessingsteps": []})
        StepAggregator(client).steps_for_plugin_types([guid(11), guid(12)])

        _, _, options = client.calls[0]
        assert options["filter"] == (
            f"(_plugintypeid_value eq {guid(11)} or _plugintypeid_value eq {guid(12)})"
            " and statuscode eq 1"
        )
        assert options["orderby"] == "stage,rank"

    def test_include_disabled_drops_status_filter(self):
        client = FakeClient(tables={"sdkmessageprocessingsteps": []})
        StepAggregator(client).steps_for_plugin_types([guid(11)], include_disabled=True)

        _, _, options = client.calls[0]
        assert "statuscode" not in options["filter"]

    def test_entity_filter_with_message(self):
        client = FakeClient(tables={"sdkmessageprocessingsteps": []})
        StepAggregator(client).steps_for_entity("account", message_name="Update")

        _, _, options = client.calls[0]
        assert options["filter"] == (
            "sdkmessagefilterid/primaryobjecttypecode eq 'account'"
            " and statuscode eq 1"
            " and sdkmessageid/name eq 'Update'"
        )
        assert options["follow_next_link"] is True

    def test_steps_come_back_in_stage_rank_order(self):
        client = FakeClient(
            tables={
                "sdkmessageprocessingsteps": [
                    step_row(3, "Post", "Create", 40, rank=1),
                    step_row(2, "Pre rank 2", "Update", 20, rank=2),
                    step_row(1, "Pre rank 1", "Update", 20, rank=1),
                ]
            }
        )
        steps = StepAggregator(client).steps_for_entity("account")
        assert [s.name for s in steps] == ["Pre rank 1", "Pre rank 2", "Post"]

    def test_equal_stage_and_rank_are_not_reordered(self):
        client = FakeClient(
            tables={
                "sdkmessageprocessingsteps": [
                    step_row(2, "B", "Update", 20, rank=1),
                    step_row(1, "A", "Update", 20, rank=1),
                ]
            }
        )
        steps = StepAggregator(client).steps_for_entity("account")
        assert [s.name for s in steps] == ["B", "A"]


class TestResolveAssemblies:
    def test_one_query_for_distinct_ids(self):
        client = FakeClient(
            tables={
                "plugintypes": [
                    {"plugintypeid": guid(11), "pluginassemblyid": {"name": "A", "version": "1.0"}},
                    {"plugintypeid": guid(12), "pluginassemblyid": {"name": "B", "version": "2.0"}},
                ]
            }
        )
        resolved = StepAggregator(client).resolve_assemblies([guid(11), guid(11), None, guid(12)])

        assert resolved == {
            guid(11): AssemblyRef(name="A", version="1.0"),
            guid(12): AssemblyRef(name="B", version="2.0"),
        }
        assert len(client.calls) == 1
        _, _, options = client.calls[0]
        assert options["filter"].count(guid(11)) == 1

    def test_empty_ids_means_no_request(self):
        client = FakeClient()
        assert StepAggregator(client).resolve_assemblies([None]) == {}
        assert client.calls == []


def test_enrich_labels_and_assembly():
    client = FakeClient(
        tables={
            "sdkmessageprocessingsteps": [
                step_row(1, "Update step", "Update", 20, mode=1, plugin_type=guid(11), filtering="name,revenue"),
            ]
        }
    )
    aggregator = StepAggregator(client)
    records = aggregator.steps_for_entity("account")
    [step] = aggregator.enrich(records, {guid(11): AssemblyRef(name="Contoso.Plugins", version="1.0.0.0")})

    assert step.stage_name == "PreOperation"
    assert step.mode_name == "Asynchronous"
    assert step.message == "Update"
    assert step.primary_entity == "account"
    assert step.plugin_type == "Contoso.Plugins.Handler"
    assert step.assembly_name == "Contoso.Plugins"
    assert step.filtering_attributes == ["name", "revenue"]
    assert step.enabled is True
    assert step.deployment == "Server"
