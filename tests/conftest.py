"""Test utilities and fixtures for quota monitor tests."""

import os
import sys
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock, Mock

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest

from config import MonitorConfig
from services import ProcessEntry, SystemProcessInspector
from utils import configure_logging


class FakeInspector(SystemProcessInspector):
    """In-memory process table and socket listing."""

    def __init__(self, processes: Optional[List[ProcessEntry]] = None, ports: Optional[Dict[str, List[str]]] = None) -> None:
        super().__init__()
        self.processes = processes or []
        self.ports = ports or {}
        self.port_queries: List[str] = []

    def list_processes(self) -> List[ProcessEntry]:
        return list(self.processes)

    def listening_ports(self, process_id: str) -> List[str]:
        self._require_pid(process_id)
        self.port_queries.append(process_id)
        return list(self.ports.get(process_id, []))


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session", autouse=True)
def structured_logging() -> None:
    """Route structlog through the same processors the monitor uses."""
    configure_logging("DEBUG", json_output=False)


@pytest.fixture
def mock_config() -> MonitorConfig:
    """Create a configuration for testing."""
    return MonitorConfig(
        process_signature="language_server",
        auth_token_flag="--csrf_token",
        refresh_interval=300.0,
        display_tick_interval=1.0,
        probe_timeout=2.0,
        refresh_on_start=True,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def language_server_entry() -> ProcessEntry:
    return ProcessEntry(
        pid="4242",
        command_line=(
            "/opt/antigravity/bin/language_server_macos_arm --enable_lsp "
            "--csrf_token 6f1c2a9e-7b1d-4c55-9a0e-3d2f1b7c8e90 --extension_server_port 53410"
        ),
    )


@pytest.fixture
def fake_inspector(language_server_entry) -> FakeInspector:
    return FakeInspector(
        processes=[
            ProcessEntry(pid="1", command_line="/sbin/launchd"),
            language_server_entry,
        ],
        ports={"4242": ["4000", "5000"]},
    )


def make_http_response(status_code: int = 200, json_data: Any = None, text: str = "") -> Mock:
    """Create a mock ``requests`` response."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


def wire_session(mock_session_class: MagicMock, *responses: Any) -> MagicMock:
    """Make ``with requests.Session() as s: s.post(...)`` yield ``responses`` in order."""
    session = MagicMock()
    session.post.side_effect = list(responses)
    mock_session_class.return_value.__enter__.return_value = session
    return session


def create_user_status(*configs: Dict[str, Any]) -> Dict[str, Any]:
    """Create a user status response wrapping ``configs``."""
    return {
        "userStatus": {
            "cascadeModelConfigData": {
                "clientModelConfigs": list(configs),
            }
        }
    }


def create_model_config(label: str, fraction: Optional[float] = 0.5, reset_time: Optional[str] = "2024-01-01T10:00:00Z") -> Dict[str, Any]:
    quota_info: Dict[str, Any] = {}
    if fraction is not None:
        quota_info["remainingFraction"] = fraction
    if reset_time is not None:
        quota_info["resetTime"] = reset_time
    return {"label": label, "quotaInfo": quota_info}
