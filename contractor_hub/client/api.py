# contractor_hub/client/api.py
import os
import logging
from typing import Any, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:5000"
DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    """A request that did not come back 2xx; status is None for transport failures"""

    def __init__(self, status: Optional[int], message: str):
        super().__init__(f"{status}: {message}" if status else message)
        self.status = status
        self.message = message


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get('error'):
        return str(body['error'])
    return getattr(response, 'reason', None) or f"HTTP {response.status_code}"


class ApiClient:
    """
    JSON client for the Contractor Hub REST API.

    One blocking request per call. Any non-2xx response or transport error
    raises ApiError; callers do not distinguish between the two.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None, session=None):
        self.base_url = (base_url or os.environ.get('CONTRACTOR_HUB_API_URL') or DEFAULT_BASE_URL).rstrip('/')
        self.timeout = timeout or float(os.environ.get('CONTRACTOR_HUB_TIMEOUT', DEFAULT_TIMEOUT))
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return self.base_url + path

    def request(self, method: str, path: str, json: Any = None, params: Optional[dict] = None) -> Any:
        try:
            response = self.session.request(
                method, self._url(path), json=json, params=params, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise ApiError(None, str(e))

        if not response.ok:
            message = _error_message(response)
            logger.error(f"{method} {path} returned {response.status_code}: {message}")
            raise ApiError(response.status_code, message)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Any = None) -> Any:
        return self.request("POST", path, json=json)

    def put(self, path: str, json: Any = None) -> Any:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)
