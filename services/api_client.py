# -*- coding: utf-8 -*-
"""
Academic Directory API Client
=============================

Talks to the academic backend's REST endpoints. The wizard uses only the
generic list/create pair; every entity kind maps to one collection endpoint.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from app.config import EntityKinds
from services.directory import DirectoryClient, DirectoryType, clean_filters
from services.exceptions import ApiException, NetworkException
from utils.logger import get_logger, redact

logger = get_logger(__name__)


# Collection endpoints per entity kind (list + create share the URL)
ENTITY_ENDPOINTS: Dict[str, str] = {
    EntityKinds.USERS: "/api/v1/accounts/users/",
    EntityKinds.PROGRAMS: "/api/v1/academic/programs/",
    EntityKinds.CLASSES: "/api/v1/academic/classes/",
    EntityKinds.SECTIONS: "/api/v1/academic/sections/",
    EntityKinds.ACADEMIC_SESSIONS: "/api/v1/core/academic-sessions/",
    EntityKinds.CLASS_TEACHERS: "/api/v1/academic/class-teachers/",
}


@dataclass
class ApiConfig:
    """
    Connection settings for the directory API.

    Values left as None are loaded from Config (which reads .env):

        API_BASE_URL=http://127.0.0.1:8000
        API_TOKEN=<token issued by the backend>
    """
    base_url: str = None
    token: Optional[str] = None
    timeout: int = None
    verify_ssl: bool = None

    def __post_init__(self):
        """Load from Config if not provided."""
        from app.config import Config

        if self.base_url is None:
            self.base_url = Config.API_BASE_URL
        if self.token is None:
            self.token = Config.API_TOKEN
        if self.timeout is None:
            self.timeout = Config.API_TIMEOUT
        if self.verify_ssl is None:
            self.verify_ssl = Config.API_VERIFY_SSL


class DirectoryApiClient(DirectoryClient):
    """
    REST client for the academic directory.

    Usage:
        client = DirectoryApiClient(ApiConfig(base_url="http://localhost:8000"))
        sections = client.list_entities("sections", {"class_obj": 42, "is_active": True})
        created = client.create_entity("sections", {"class_obj": 42, "name": "A"})
    """

    def __init__(self, config: ApiConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.base_url = config.base_url.rstrip('/')
        self.access_token: Optional[str] = config.token
        self.session = session or requests.Session()

    @property
    def directory_type(self) -> DirectoryType:
        return DirectoryType.HTTP_API

    def set_access_token(self, token: str):
        """Use the token of the signed-in operator for subsequent calls."""
        self.access_token = token
        logger.debug("Access token updated externally")

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json"
        }
        if self.access_token:
            headers["Authorization"] = f"Token {self.access_token}"
        return headers

    def _endpoint(self, kind: str) -> str:
        try:
            return ENTITY_ENDPOINTS[kind]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind}")

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict] = None,
        params: Optional[Dict] = None
    ) -> Any:
        """
        Execute an HTTP request and decode the JSON body.

        Raises:
            ApiException: non-2xx response
            NetworkException: connection error or timeout
        """
        url = f"{self.base_url}{endpoint}"

        logger.info(f"[API REQ] {method} {endpoint}")
        if params:
            logger.debug(f"[API REQ] Params: {params}")
        if json_data:
            logger.debug(f"[API REQ] Body: {json.dumps(redact(json_data), ensure_ascii=False, default=str)}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                json=json_data,
                params=params,
                headers=self._headers(),
                timeout=self.config.timeout,
                verify=self.config.verify_ssl
            )
            response.raise_for_status()

            result = None
            if response.status_code != 204 and response.text:
                result = response.json()

            logger.info(f"[API RES] {response.status_code} {endpoint}")
            return result

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            response_data = {}
            try:
                response_data = e.response.json() if e.response is not None else {}
            except ValueError:
                pass
            logger.error(f"[API ERR] {status_code} {method} {endpoint} | Response: {response_data}")
            raise ApiException(
                message=_error_message(response_data, str(e)),
                status_code=status_code,
                response_data=response_data
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            logger.error(f"Network error: {endpoint} - {e}")
            raise NetworkException(message=str(e), original_error=e)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {endpoint} - {e}")
            raise NetworkException(message=str(e), original_error=e)

    # ==================== Directory contract ====================

    def list_entities(self, kind: str, filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        params = {key: _query_value(value) for key, value in clean_filters(filters).items()}
        response = self._request("GET", self._endpoint(kind), params=params)

        # Paginated: {"count": N, "next": ..., "results": [...]}; only the first page is used
        if isinstance(response, dict):
            results = response.get("results", [])
        elif isinstance(response, list):
            results = response
        else:
            results = []

        logger.info(f"Fetched {len(results)} {kind}")
        return results

    def create_entity(self, kind: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        created = self._request("POST", self._endpoint(kind), json_data=payload)
        if not isinstance(created, dict) or created.get("id") is None:
            raise ApiException(
                message=f"Failed to create {kind}: response has no id",
                response_data=created if isinstance(created, dict) else {}
            )
        logger.info(f"Created {kind} id={created['id']}")
        return created


def _query_value(value: Any) -> Any:
    """Render booleans the way the backend's filter fields expect them."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def _error_message(response_data: Any, fallback: str) -> str:
    if isinstance(response_data, dict):
        return response_data.get("detail") or response_data.get("message") or fallback
    return fallback


# ==================== Singleton Instance ====================

_api_client_instance: Optional[DirectoryApiClient] = None


def get_api_client(config: Optional[ApiConfig] = None) -> DirectoryApiClient:
    """
    Shared DirectoryApiClient instance.

    Args:
        config: API settings (only used on first call)
    """
    global _api_client_instance

    if _api_client_instance is None:
        if config is None:
            config = ApiConfig()
        _api_client_instance = DirectoryApiClient(config)

    return _api_client_instance


def reset_api_client():
    """Drop the shared client (used by tests)."""
    global _api_client_instance
    _api_client_instance = None
