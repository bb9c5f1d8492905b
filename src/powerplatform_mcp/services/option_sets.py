# src/powerplatform_mcp/services/option_sets.py
from typing import Any, Dict

from powerplatform_mcp import odata


class OptionSetService:
    def __init__(self, client):
        self.client = client

    def get_global_option_set(self, option_set_name: str) -> Dict[str, Any]:
        """Global option set definition (options, labels) by name."""
        return self.client.get(f"GlobalOptionSetDefinitions(Name={odata.literal(option_set_name)})")
