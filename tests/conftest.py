from collections.abc import Iterator
import socket
from threading import Thread
import time

import pytest
from fastapi.testclient import TestClient
import uvicorn

from jobstream.config import get_settings
from jobstream.main import app
from jobstream.services.jobs import JobRun, StreamMessage, get_registry, get_runner


@pytest.fixture(autouse=True)
def reset_caches(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("JOB1_PAGE_DELAY_SECONDS", "0.05")
    monkeypatch.setenv("JOB2_DELAY_SECONDS", "0")
    monkeypatch.setenv("JOBSTREAM_RECEIVE_POLL_SECONDS", "0.02")
    get_settings.cache_clear()
    get_registry.cache_clear()
    get_runner.cache_clear()
    yield
    get_settings.cache_clear()
    get_registry.cache_clear()
    get_runner.cache_clear()


@pytest.fixture
def client() -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def live_server() -> Iterator[str]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]

    config = uvicorn.Config(app, lifespan="off", log_level="warning", timeout_graceful_shutdown=1)
    server = uvicorn.Server(config)
    thread = Thread(target=server.run, kwargs={"sockets": [sock]}, daemon=True)
    thread.start()

    deadline = time.monotonic() + 5
    while not server.started:
        if time.monotonic() > deadline:
            raise RuntimeError("uvicorn did not start")
        time.sleep(0.01)

    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    thread.join(timeout=5)
    app.dependency_overrides.clear()
    sock.close()


def drain(run: JobRun) -> list[StreamMessage]:
    messages: list[StreamMessage] = []
    while True:
        message = run.receive()
        if message is None:
            return messages
        messages.append(message)


def parse_frames(body: str) -> list[dict[str, str]]:
    frames: list[dict[str, str]] = []
    for raw_frame in body.split("\n\n"):
        if not raw_frame:
            continue
        event = "message"
        data_lines: list[str] = []
        for line in raw_frame.split("\n"):
            field, _, value = line.partition(": ")
            if field == "event":
                event = value
            elif field == "data":
                data_lines.append(value)
        frames.append({"event": event, "data": "\n".join(data_lines)})
    return frames
