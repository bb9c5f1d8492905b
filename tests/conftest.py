"""
Pytest fixtures and configuration for PowerPlatform MCP tests.

FakeClient stands in for PowerPlatformClient. It serves canned rows per
entity set and records every call. It applies $orderby and $top the way
the Web API does; $filter is not interpreted, so each test seeds only the
rows the query under test should see.
"""
import pytest

from powerplatform_mcp.config import PowerPlatformConfig
from powerplatform_mcp.models import PipelineStep
from powerplatform_mcp.services import (
    AssemblyCatalog,
    ImageBinder,
    PipelineAssembler,
    StepAggregator,
)


def _sort_key(column):
    # Nulls sort first, like the Web API
    def key(row):
        value = row.get(column)
        return (value is not None, value if value is not None else 0)

    return key


def apply_orderby(rows, orderby):
    if not orderby:
        return list(rows)
    rows = list(rows)
    # Stable sort from the last column back to the first
    for clause in reversed([c.strip() for c in orderby.split(",")]):
        parts = clause.split()
        column = parts[0]
        descending = len(parts) > 1 and parts[1].lower() == "desc"
        rows.sort(key=_sort_key(column), reverse=descending)
    return rows


class FakeClient:
    def __init__(self, tables=None, resources=None, actions=None):
        self.tables = dict(tables or {})
        self.resources = dict(resources or {})
        self.actions = dict(actions or {})
        self.calls = []

    @staticmethod
    def _serve(value):
        if isinstance(value, Exception):
            raise value
        return value

    def get_collection(
        self,
        entity_set,
        select=None,
        filter=None,
        expand=None,
        orderby=None,
        top=None,
        follow_next_link=False,
    ):
        self.calls.append(
            (
                "collection",
                entity_set,
                {
                    "select": select,
                    "filter": filter,
                    "expand": expand,
                    "orderby": orderby,
                    "top": top,
                    "follow_next_link": follow_next_link,
                },
            )
        )
        rows = apply_orderby(self._serve(self.tables.get(entity_set, [])), orderby)
        return rows[:top] if top is not None else rows

    def get(self, endpoint, params=None):
        self.calls.append(("get", endpoint, params))
        return self._serve(self.resources[endpoint])

    def post(self, endpoint, payload):
        self.calls.append(("post", endpoint, payload))
        return self._serve(self.actions[endpoint])

    def calls_to(self, entity_set):
        return [c for c in self.calls if c[1] == entity_set]


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def assembler_for():
    """Build a PipelineAssembler over a FakeClient."""

    def build(client):
        return PipelineAssembler(
            AssemblyCatalog(client), StepAggregator(client), ImageBinder(client), max_workers=2
        )

    return build


@pytest.fixture
def connection_config():
    return PowerPlatformConfig(
        url="https://contoso.crm.dynamics.com/",
        client_id="client-id",
        client_secret="client-secret",
        tenant_id="tenant-id",
    )


# =============================================================================
# Row builders
# =============================================================================


def guid(n: int) -> str:
    """Deterministic, valid GUID for test rows."""
    return f"00000000-0000-0000-0000-{n:012d}"


def step_row(
    n,
    name,
    message,
    stage,
    rank=1,
    mode=0,
    entity="account",
    plugin_type=None,
    status=1,
    filtering=None,
):
    return {
        "sdkmessageprocessingstepid": guid(n),
        "name": name,
        "stage": stage,
        "mode": mode,
        "rank": rank,
        "statuscode": status,
        "supporteddeployment": 0,
        "filteringattributes": filtering,
        "_plugintypeid_value": plugin_type,
        "sdkmessageid": {"name": message},
        "plugintypeid": {"typename": "Contoso.Plugins.Handler"},
        "sdkmessagefilterid": {"primaryobjecttypecode": entity},
    }


def image_row(n, step_n, image_type=0, attributes="name"):
    return {
        "sdkmessageprocessingstepimageid": guid(n),
        "name": f"Image{n}",
        "imagetype": image_type,
        "messagepropertyname": "Target",
        "entityalias": "image",
        "attributes": attributes,
        "_sdkmessageprocessingstepid_value": guid(step_n),
    }


def pipeline_step(name, message="Update", stage=20, mode=0, status_code=1, filtering=None, images=None):
    return PipelineStep(
        name=name,
        message=message,
        stage=stage,
        mode=mode,
        status_code=status_code,
        filtering_attributes=filtering or [],
        images=images or [],
    )
