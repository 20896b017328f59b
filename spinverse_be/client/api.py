"""
Thin HTTP client for the SpinVerse REST API.

GET responses are cached per path until invalidated, mirroring how the web
client keeps query results around until a mutation marks them stale.
"""
import logging
from typing import Any, Dict, Optional

import requests

from .exceptions import ClientError

logger = logging.getLogger(__name__)


class ApiClient:
    def __init__(self, base_url: str, session=None, token: Optional[str] = None,
                 http: Optional[requests.Session] = None, timeout: float = 10):
        self.base_url = base_url.rstrip('/')
        self.session = session
        self.token = token
        self.http = http or requests.Session()
        self.timeout = timeout
        self._cache: Dict[str, Any] = {}

    def _headers(self) -> Dict[str, str]:
        headers = {'Content-Type': 'application/json'}
        if self.session is not None:
            headers.update(self.session.auth_headers())
        elif self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _handle(self, response) -> Any:
        if not response.ok:
            error = ClientError.from_response(response)
            logger.warning("API %s %s failed: %s", response.request.method if response.request else '',
                           response.url, error.message)
            raise error
        return response.json()

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, use_cache: bool = True) -> Any:
        cache_key = path if not params else f"{path}?{sorted(params.items())}"
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]
        try:
            response = self.http.get(self._url(path), params=params, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise ClientError(f"Network error: {e}") from e
        data = self._handle(response)
        if use_cache:
            self._cache[cache_key] = data
        return data

    def post(self, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self.http.post(self._url(path), json=payload or {}, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise ClientError(f"Network error: {e}") from e
        return self._handle(response)

    def invalidate(self, path: Optional[str] = None) -> None:
        """Drop cached GET results for `path`, or everything when no path is given."""
        if path is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k == path or k.startswith(f"{path}?")]:
            del self._cache[key]
