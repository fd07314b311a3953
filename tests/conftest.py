import asyncio
import random
import socket
from contextlib import asynccontextmanager

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from subprobe.util.types import Result
from subprobe.scanner.probes.http_probe import ProbeOutcome

CONFIG_ENV_VARS = [
    'WORKERS', 'HTTP_TIMEOUT', 'EXTRACT_INFO', 'SCREENSHOT_MODE', 'SCREENSHOT_DIR',
    'OUT_DIR', 'ENABLE_CSV', 'ENABLE_EXCEL', 'ENABLE_HTML', 'ONLY_ALIVE',
    'MAX_BODY_BYTES', 'USER_AGENT', 'PAGE_RULES_FILE', 'PROGRESS_INTERVAL',
]


@pytest.fixture
def clean_env(monkeypatch):
    """Strip config variables; anything load_dotenv sets is undone afterwards."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)
    return monkeypatch


class FakeProbe:
    """Stands in for HTTPProbe: random latency, scripted outcomes, no network."""

    def __init__(self, dead=(), crash=(), max_delay=0.01, body=b"<html><title>Hi</title></html>"):
        self.dead = set(dead)
        self.crash = set(crash)
        self.max_delay = max_delay
        self.body = body
        self.calls = []

    async def check(self, domain):
        self.calls.append(domain)
        await asyncio.sleep(random.uniform(0, self.max_delay))
        if domain in self.crash:
            raise RuntimeError(f"boom on {domain}")
        if domain in self.dead:
            return ProbeOutcome(result=Result(
                domain=domain, alive=False, status=0,
                status_text="unreachable", message="timeout"
            ))
        return ProbeOutcome(
            result=Result(domain=domain, alive=True, status=200, status_text="200 OK",
                          url=f"https://{domain}/"),
            body=self.body,
            content_type="text/html; charset=utf-8",
            headers={'content-type': 'text/html; charset=utf-8'}
        )


@asynccontextmanager
async def serve(handler):
    """Run a one-route aiohttp server on 127.0.0.1; yields 'host:port'."""
    app = web.Application()
    app.router.add_route('*', '/', handler)
    app.router.add_route('*', '/{tail:.*}', handler)
    server = TestServer(app, host='127.0.0.1')
    await server.start_server()
    try:
        yield f"127.0.0.1:{server.port}"
    finally:
        await server.close()


def free_port() -> int:
    """A port nothing is listening on (bound then released)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class BrokenPipeStream:
    """Output stream whose reader has gone away (`subprobe ... | head`)."""

    def write(self, text):
        raise BrokenPipeError(32, "Broken pipe")

    def flush(self):
        raise BrokenPipeError(32, "Broken pipe")
