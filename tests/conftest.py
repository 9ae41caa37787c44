"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_port
from tests.utils.process import launch_server

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    base_url: str
    host: str
    port: int
    workdir: Path
    process: subprocess.Popen[str]
    log_file: Path


def _run_server(
    workdir: Path, extra_args: list[str] | None = None
) -> Generator[ServerProcessInfo, None, None]:
    host = "127.0.0.1"
    port = reserve_port(host)
    process = launch_server(workdir, port, extra_args)
    try:
        wait_for_port(host, port)
    except Exception:
        process.terminate()
        stdout, stderr = process.communicate(timeout=5)
        print(f"\nServer stdout:\n{stdout}")
        print(f"\nServer stderr:\n{stderr}")
        raise

    yield {
        "base_url": f"http://{host}:{port}",
        "host": host,
        "port": port,
        "workdir": workdir,
        "process": process,
        "log_file": workdir / "server.log",
    }

    if process.poll() is None:
        process.terminate()
    try:
        process.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        process.kill()
        process.communicate()


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the server in a background process for integration tests."""

    yield from _run_server(tmp_path_factory.mktemp("server"))


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running server base URL to integration tests."""

    return server_process["base_url"]
