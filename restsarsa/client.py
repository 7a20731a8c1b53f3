"""
HTTP Client for the Service Under Test

Thin wrapper around a ``requests.Session`` that fires one pending request
against the CRUD endpoints (``/<resource>`` and ``/<resource>/<id>``) and turns
every transport failure into "no response" instead of an exception.
"""

import time
import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .strategy import HttpVerb, Resource


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080/api/"
DEFAULT_TIMEOUT = 10.0


@dataclass
class ApiResponse:
    """Status and (optionally decoded) body of one request."""
    method: str
    url: str
    status_code: int
    body: Any
    text: str
    response_time: float

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


class ServiceClient:
    """Sends dial-built requests to the service under test."""

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {'Content-Type': 'application/json', 'Accept': 'application/json'}

    def build_url(self, resource: Resource, identifier: Optional[str] = None) -> str:
        url = f"{self.base_url.rstrip('/')}/{resource.path}"
        if identifier is not None:
            url += f"/{identifier}"
        return url

    def send(self, verb: HttpVerb, resource: Resource, identifier: Optional[str] = None,
             body: Optional[str] = None) -> Optional[ApiResponse]:
        """
        Execute one request.

        Args:
            verb: Selected HTTP verb (GET_ALL addresses the collection)
            resource: Target resource collection
            identifier: Entity identifier for single-entity verbs
            body: Raw request body, sent verbatim (it may be malformed JSON)

        Returns:
            The response, or None when the call failed (connection error, timeout, ...)
        """
        if verb == HttpVerb.NONE:
            raise ValueError("Cannot send a request without a verb")

        url = self.build_url(resource, identifier if verb.needs_identifier else None)
        method = verb.method
        data = body.encode('utf-8') if body is not None else None

        logger.debug(f"{method} {url}\n{self.to_curl(method, url, body)}")

        start_time = time.time()
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=self.headers,
                data=data,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning(f"API call failed: {method} {url}: {e}")
            return None
        response_time = time.time() - start_time

        response_body = None
        try:
            response_body = response.json() if response.content else None
        except ValueError:
            logger.debug(f"Non-JSON response body from {method} {url}")

        logger.debug(f"{method} {url} -> {response.status_code} ({response_time:.3f}s)")

        return ApiResponse(
            method=method,
            url=url,
            status_code=response.status_code,
            body=response_body,
            text=response.text[:1000],
            response_time=response_time
        )

    def to_curl(self, method: str, url: str, body: Optional[str] = None) -> str:
        """Equivalent curl command for debugging."""
        curl_parts = [f"curl --location --request {method} '{url}'"]
        for key, value in self.headers.items():
            curl_parts.append(f"--header '{key}: {value}'")
        if body is not None:
            curl_parts.append(f"--data '{body[:500]}'")
        return " \\\n".join(curl_parts)

    def close(self) -> None:
        self.session.close()


def extract_id(payload: Any) -> Optional[str]:
    """
    Identifier of a created entity (``{"id": ...}``) or of the first entity of
    a listing (``[{"id": ...}, ...]``), stringified. None when absent.
    """
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if not isinstance(payload, dict):
        return None
    value = payload.get('id')
    if value is None or isinstance(value, (bool, dict, list)):
        return None
    identifier = str(value).strip()
    # A blank id would address the collection URL
    return identifier or None
