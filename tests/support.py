"""
Test doubles for backend_transport tests.
"""
import json
from typing import Any, Awaitable, Callable, List, Union

import httpx


Step = Union[
    httpx.Response,
    Exception,
    Callable[[httpx.Request], Union[httpx.Response, Awaitable[httpx.Response]]],
]


class ScriptedBackend:
    """
    Mock backend replaying a script of responses/exceptions.

    The last step repeats once the script is exhausted.
    """

    def __init__(self, *steps: Step) -> None:
        self.steps: List[Step] = list(steps) or [json_response({"ok": True})]
        self.requests: List[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        index = min(len(self.requests), len(self.steps)) - 1
        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, json=data)


def html_response(status_code: int = 404) -> httpx.Response:
    return httpx.Response(
        status_code,
        text="<!DOCTYPE html><html><body>Not Found</body></html>",
        headers={"content-type": "text/html; charset=utf-8"},
    )


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


FAST_RETRY = {"retry": {"base_delay_ms": 0, "max_delay_ms": 0}}
