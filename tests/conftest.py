"""
Shared fixtures: an in-memory stand-in for the service under test.
"""

import json
from typing import Any, Dict, List, Optional

import numpy as np
import pytest

from restsarsa.client import ApiResponse
from restsarsa.config import TesterConfig
from restsarsa.environment import FuzzEnvironment
from restsarsa.payloads import PayloadGenerator
from restsarsa.strategy import HttpVerb, Resource


def make_response(status_code: int, body: Any = None, method: str = 'GET',
                  url: str = 'http://stub/api/items') -> ApiResponse:
    return ApiResponse(
        method=method,
        url=url,
        status_code=status_code,
        body=body,
        text=json.dumps(body) if body is not None else '',
        response_time=0.0,
    )


class StubClient:
    """
    Duck-typed ``ServiceClient`` backed by an in-memory CRUD store.

    Malformed JSON bodies make it answer 500. Responses pushed onto ``queue``
    (ApiResponse or None for "no response") are served first, in order.
    """

    def __init__(self, queue: Optional[List[Optional[ApiResponse]]] = None):
        self.queue = list(queue or [])
        self.calls = []
        self.store: Dict[Resource, Dict[str, dict]] = {r: {} for r in Resource}
        self.next_id = 1
        self.closed = False

    def send(self, verb: HttpVerb, resource: Resource, identifier: Optional[str] = None,
             body: Optional[str] = None) -> Optional[ApiResponse]:
        self.calls.append((verb, resource, identifier, body))
        if self.queue:
            return self.queue.pop(0)
        return self._handle(verb, resource, identifier, body)

    def close(self):
        self.closed = True

    def _handle(self, verb, resource, identifier, body):
        records = self.store[resource]
        method = verb.method

        payload = None
        if verb.has_body:
            try:
                payload = json.loads(body)
            except (TypeError, ValueError):
                return make_response(500, {'error': 'Internal Server Error'}, method)
            if not isinstance(payload, dict):
                return make_response(500, {'error': 'Internal Server Error'}, method)

        if verb == HttpVerb.POST:
            new_id = str(self.next_id)
            self.next_id += 1
            records[new_id] = dict(payload, id=int(new_id))
            return make_response(201, records[new_id], method)
        if verb == HttpVerb.GET_ALL:
            return make_response(200, list(records.values()), method)
        if identifier not in records:
            return make_response(404, {'error': 'Not Found'}, method)
        if verb == HttpVerb.GET:
            return make_response(200, records[identifier], method)
        if verb == HttpVerb.DELETE:
            del records[identifier]
            return make_response(204, None, method)
        records[identifier].update(payload)
        return make_response(200, records[identifier], method)


@pytest.fixture
def stub_client():
    return StubClient()


@pytest.fixture
def environment(stub_client):
    return FuzzEnvironment(stub_client, PayloadGenerator(seed=7), max_steps=35)


@pytest.fixture
def small_config():
    return TesterConfig(episodes=3, step_limit=10, log_every=2, seed=1234,
                        base_url='http://stub/api/')


@pytest.fixture
def rng():
    return np.random.default_rng(1234)
