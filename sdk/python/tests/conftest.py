import json
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from bonsai_sdk import AsyncClient, Client

BASE_URL = "https://api.bonsai.test"
API_KEY = "test-key"
RISC0_VERSION = "1.2.0"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeBonsai:
    """Route table for httpx.MockTransport that records every request.

    Replies registered for a route are served in order; the last one repeats.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, *replies: Reply) -> None:
        if not url.startswith("http"):
            url = BASE_URL + url
        self.routes[(method, str(httpx.URL(url)))] = list(replies)

    def json(self, method: str, url: str, data, status: int = 200) -> None:
        self.add(method, url, httpx.Response(status, json=data))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get((request.method, str(request.url)))
        if not replies:
            return httpx.Response(500, text=f"no route for {request.method} {request.url}")
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if callable(reply):
            return reply(request)
        return reply

    def sent(self, method: str, url: str) -> List[httpx.Request]:
        if not url.startswith("http"):
            url = BASE_URL + url
        target = str(httpx.URL(url))
        return [r for r in self.requests if r.method == method and str(r.url) == target]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def server():
    return FakeBonsai()


@pytest.fixture
def client(server):
    c = Client.from_parts(
        BASE_URL, API_KEY, RISC0_VERSION, transport=httpx.MockTransport(server), environ={}
    )
    yield c
    c.close()


@pytest.fixture
def async_client(server):
    return AsyncClient.from_parts(
        BASE_URL, API_KEY, RISC0_VERSION, transport=httpx.MockTransport(server), environ={}
    )
