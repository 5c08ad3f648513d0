"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.gemini import (
    PROJECT_ROOT,
    populate_capsule,
    start_server,
    write_self_signed_cert,
)

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory


class TlsCredentials(TypedDict):
    """Paths to a generated certificate and key."""

    cert: Path
    key: Path


class ServerProcessInfo(TypedDict):
    """Metadata describing a running server fixture instance."""

    host: str
    port: int
    root: Path
    process: subprocess.Popen[str]
    log_file: Path


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Expose the repository root path to tests."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def tls_credentials(tmp_path_factory: "TempPathFactory") -> TlsCredentials:
    """Generate one self-signed certificate for the whole session."""
    directory = tmp_path_factory.mktemp("tls")
    cert, key = directory / "cert.pem", directory / "key.pem"
    write_self_signed_cert(cert, key)
    return {"cert": cert, "key": key}


@pytest.fixture()
def capsule_root(tmp_path: Path) -> Path:
    """A small capsule in a per-test directory."""
    return populate_capsule(tmp_path / "capsule")


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
    tls_credentials: TlsCredentials,
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the Gemini server in a background process for integration tests."""
    yield from start_server(
        tmp_path_factory,
        tls_credentials,
        ["--handshake-timeout", "2", "--socket-timeout", "2"],
    )
