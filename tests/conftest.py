"""
thruster: Test Configuration (conftest.py)
============================================

Shared fixtures for the test suite.

Fixture Hierarchy:
    Function-scoped:
    ├── credentials:   Two Basic-Auth principals
    ├── port:          A free TCP port on 127.0.0.1
    ├── tls_files:     Self-signed certificate + key generated with openssl
    ├── serve:         Runs Server.run() in a background thread for one test
    └── asgi:          Factory for in-process httpx clients on server.engine
"""

import os
import shutil
import socket
import subprocess
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import httpx
import pytest

os.environ.setdefault("THRUSTER_LOG_LEVEL", "WARNING")

from thruster import Server  # noqa: E402
from thruster.config import HTTPAuth  # noqa: E402

FIXTURES = Path(__file__).parent / "fixtures"


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def asgi_client(server: Server, **kwargs) -> httpx.AsyncClient:
    """HTTPX AsyncClient routed straight into the server's engine (no socket)."""
    transport = httpx.ASGITransport(app=server.engine)
    return httpx.AsyncClient(transport=transport, base_url="http://test", **kwargs)


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES


@pytest.fixture
def credentials():
    return [
        HTTPAuth(username="admin", password="passwd"),
        HTTPAuth(username="root", password="passwd2"),
    ]


@pytest.fixture
def port() -> int:
    return free_port()


@pytest.fixture
def tls_files(tmp_path):
    """
    A self-signed certificate for CN=localhost, valid for one day.

    Returns:
        (certificate path, key path)
    """
    if shutil.which("openssl") is None:
        pytest.skip("openssl is not available")

    cert_path = tmp_path / "server.crt"
    key_path = tmp_path / "server.key"
    subprocess.run(
        [
            "openssl", "req", "-x509",
            "-newkey", "rsa:2048",
            "-nodes",
            "-keyout", str(key_path),
            "-out", str(cert_path),
            "-days", "1",
            "-subj", "/CN=localhost",
        ],
        capture_output=True,
        check=True,
    )
    return cert_path, key_path


@contextmanager
def running(server: Server, timeout: float = 10.0) -> Iterator[Server]:
    """Run ``server`` in a daemon thread until the block exits."""
    errors = []

    def target():
        try:
            server.run()
        except Exception as e:  # surfaced to the test below
            errors.append(e)

    thread = threading.Thread(target=target, daemon=True)
    thread.start()

    deadline = time.monotonic() + timeout
    while not server.started:
        if errors:
            raise errors[0]
        if not thread.is_alive() or time.monotonic() > deadline:
            pytest.fail("server did not start")
        time.sleep(0.02)

    try:
        yield server
    finally:
        server.shutdown()
        thread.join(timeout)


@pytest.fixture
def serve():
    """Context manager factory: ``with serve(server): ...``."""
    return running


@pytest.fixture
def asgi():
    """Factory for in-process clients: ``async with asgi(server) as client: ...``."""
    return asgi_client
