# src/powerplatform_mcp/services/records.py
from typing import Any, Dict, Optional

from powerplatform_mcp import odata


class RecordService:
    """Read access to business records by entity set name (e.g. 'accounts')."""

    def __init__(self, client):
        self.client = client

    def get_record(self, entity_set: str, record_id: str) -> Dict[str, Any]:
        return self.client.get(f"{odata.identifier(entity_set)}({odata.guid(record_id)})")

    def query_records(
        self,
        entity_set: str,
        filter: str,
        limit: int = 50,
        orderby: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Query records with a caller-supplied OData filter expression.

        Args:
            entity_set: Plural entity set name
            filter: OData filter (e.g. "name eq 'test'")
            limit: Maximum number of records ($top)
            orderby: Optional OData orderby (e.g. "createdon desc")
        """
        return self.client.get(
            odata.identifier(entity_set),
            params=odata.build_query(filter=filter, orderby=orderby, top=limit),
        )
