import os
import sys
import pathlib

import pytest

# Ensure project root is importable in tests
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from core.config import HostConfig  # noqa: E402
from core.host import McpHost  # noqa: E402


@pytest.fixture
def host():
    return McpHost(HostConfig())


@pytest.fixture
def client(host):
    from fastapi.testclient import TestClient
    from remote_server import create_app

    return TestClient(create_app(host))
