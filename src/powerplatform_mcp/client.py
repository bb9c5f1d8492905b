# src/powerplatform_mcp/client.py
"""
Authenticated access to the Dataverse Web API.

- AccessTokenProvider: MSAL client credential flow with an explicit token
  cache that refreshes shortly before expiry.
- PowerPlatformClient: thin httpx wrapper exposing the three read primitives
  the services need (collection query, single resource GET, action POST).

Refresh races between threads are harmless: acquiring a token twice simply
replaces the cached value with an equally valid one.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import msal

from powerplatform_mcp import odata
from powerplatform_mcp.config import PowerPlatformConfig
from powerplatform_mcp.errors import (
    AuthenticationError,
    ConfigurationError,
    NotFoundError,
    RemoteReadError,
)

logger = logging.getLogger(__name__)

AUTHORITY_TEMPLATE = "https://login.microsoftonline.com/{tenant_id}"


class AccessTokenProvider:
    """
    Caches one bearer token for the configured organization.

    Args:
        config: Connection settings (url, client id/secret, tenant id)
        app: Optional pre-built MSAL application (tests inject a mock)
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        config: PowerPlatformConfig,
        app: Optional[Any] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.scopes = [f"{config.organization_url}/.default"]
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

        if app is None:
            app = msal.ConfidentialClientApplication(
                config.client_id,
                client_credential=config.client_secret.get_secret_value(),
                authority=AUTHORITY_TEMPLATE.format(tenant_id=config.tenant_id),
            )
        self._msal_app = app

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def get_token(self) -> str:
        """Return a valid token, acquiring a new one if the cached one is near expiry."""
        with self._lock:
            now = self._clock()
            if self._token and now < self._expires_at:
                return self._token

        try:
            result = self._msal_app.acquire_token_for_client(scopes=self.scopes)
        except Exception as e:
            logger.error(f"Error acquiring access token: {e}")
            raise AuthenticationError(f"Authentication failed: {e}") from e

        if not result or "access_token" not in result:
            error_desc = (result or {}).get("error_description", "no access token returned")
            logger.error(f"Error acquiring access token: {error_desc}")
            raise AuthenticationError(f"Authentication failed: {error_desc}")

        expires_in = int(result.get("expires_in", 0))
        with self._lock:
            self._token = result["access_token"]
            self._expires_at = self._clock() + expires_in - self.config.token_refresh_margin_seconds
            logger.debug(f"Acquired access token (expires in {expires_in}s)")
            return self._token


class PowerPlatformClient:
    """
    Base client for Dataverse Web API access.

    Service classes receive this client through their constructor. All
    request failures surface as RemoteReadError (or NotFoundError for 404).
    """

    def __init__(
        self,
        config: PowerPlatformConfig,
        token_provider: Optional[AccessTokenProvider] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        missing = config.missing_fields()
        if missing:
            raise ConfigurationError(
                f"Missing PowerPlatform configuration: {', '.join(missing)}. "
                "Set these in environment variables or the config file."
            )

        self.config = config
        self.token_provider = token_provider or AccessTokenProvider(config)
        self.base_url = f"{config.organization_url}/api/data/{config.api_version}/"
        self._http = http_client or httpx.Client(timeout=config.request_timeout_seconds)

    @property
    def organization_url(self) -> str:
        return self.config.organization_url

    def close(self):
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token_provider.get_token()}",
            "Accept": "application/json",
            "OData-MaxVersion": "4.0",
            "OData-Version": "4.0",
        }

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        headers = self._headers()
        try:
            response = self._http.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"PowerPlatform API request failed: {method} {url}: {e}")
            raise RemoteReadError(f"PowerPlatform API request failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(f"Resource not found: {_error_detail(response)}")
        if response.is_error:
            detail = _error_detail(response)
            logger.error(
                f"PowerPlatform API request failed: {method} {url}: "
                f"{response.status_code} {detail}"
            )
            raise RemoteReadError(
                f"PowerPlatform API request failed with status {response.status_code}: {detail}"
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteReadError(f"PowerPlatform API returned invalid JSON: {e}") from e

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Make an authenticated GET request.

        Args:
            endpoint: Path relative to the Web API root (e.g. "pluginassemblies")
            params: Query parameters
        """
        return self._send("GET", self.base_url + endpoint, params=params)

    def post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make an authenticated POST request (used for read-only actions)."""
        return self._send("POST", self.base_url + endpoint, json=payload)

    def get_collection(
        self,
        entity_set: str,
        select: Optional[Iterable[str]] = None,
        filter: Optional[str] = None,
        expand: Optional[Iterable[str]] = None,
        orderby: Optional[str] = None,
        top: Optional[int] = None,
        follow_next_link: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Query an entity set and return the rows of its ``value`` array.

        With follow_next_link, @odata.nextLink pages are fetched until the
        server stops returning one. Capped queries ($top) never page.
        """
        params = odata.build_query(
            select=select, filter=filter, expand=expand, orderby=orderby, top=top
        )
        payload = self.get(entity_set, params=params)
        rows = list(_values(payload))
        pages = 1

        next_link = payload.get("@odata.nextLink")
        while follow_next_link and next_link:
            payload = self._send("GET", next_link)
            rows.extend(_values(payload))
            next_link = payload.get("@odata.nextLink")
            pages += 1

        logger.debug(f"Fetched {len(rows)} rows from {entity_set} ({pages} page(s))")
        return rows


def _values(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    value = payload.get("value") if isinstance(payload, dict) else None
    if value is None:
        raise RemoteReadError("PowerPlatform API response has no 'value' collection")
    if not isinstance(value, list):
        raise RemoteReadError("PowerPlatform API 'value' is not a collection")
    return value


def _error_detail(response: httpx.Response) -> str:
    """Pull the OData error message out of a failed response, if present."""
    try:
        body = response.json()
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return body["error"].get("message") or response.text
        return response.text
    except ValueError:
        return response.text or response.reason_phrase
