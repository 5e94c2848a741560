"""Quota endpoint client for the local language server.

This module sends the user status request to one candidate port and turns the
response into quota records.
"""

from typing import Any, Dict, List, Optional, Tuple

import requests

from config import MonitorConfig
from models import QuotaRecord
from utils import create_contextual_logger
from .exceptions import ProbeError

# Where the model list may live in a response, most specific first
_MODEL_CONFIG_PATHS: Tuple[Tuple[str, ...], ...] = (
    ("userStatus", "cascadeModelConfigData", "clientModelConfigs"),
    ("cascadeModelConfigData", "clientModelConfigs"),
    ("clientModelConfigs",),
)


class QuotaProber:
    """Synchronous client issuing one quota request per probe."""

    def __init__(self, config: MonitorConfig) -> None:
        self.config = config
        self.logger = create_contextual_logger(__name__, service="quota_prober")

    def build_url(self, port: str) -> str:
        return f"http://{self.config.probe_host}:{port}/{self.config.service_path}"

    def build_headers(self, auth_token: str) -> Dict[str, str]:
        return {
            "User-Agent": f"Quota-Monitor/{self.config.app_version}",
            "Content-Type": "application/json",
            self.config.auth_header: auth_token,
            self.config.protocol_version_header: self.config.protocol_version,
            "Connection": "close",
        }

    def build_body(self) -> Dict[str, Any]:
        return {
            "metadata": {
                "ideName": self.config.ide_name,
                "extensionName": self.config.extension_name,
                "locale": self.config.locale,
            }
        }

    def probe(self, port: str, auth_token: str) -> List[QuotaRecord]:
        """POST the quota request to ``port`` and parse the records.

        Raises:
            ProbeError: on network failure, timeout, a non-2xx status or a
                response body of the wrong shape.
        """
        if not str(port).isdigit():
            raise ProbeError("Port is not numeric", port=str(port))

        url = self.build_url(port)
        try:
            with requests.Session() as session:
                response = session.post(
                    url,
                    json=self.build_body(),
                    headers=self.build_headers(auth_token),
                    timeout=self.config.probe_timeout,
                )
        except requests.exceptions.Timeout as e:
            raise ProbeError(f"Request timed out after {self.config.probe_timeout}s", port=port) from e
        except requests.exceptions.RequestException as e:
            raise ProbeError(f"Request failed: {e}", port=port) from e

        if not 200 <= response.status_code < 300:
            raise ProbeError(
                "Unexpected HTTP status",
                port=port,
                status_code=response.status_code,
                details=response.text[:500],
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProbeError("Response body is not JSON", port=port, status_code=response.status_code) from e

        records = self.parse_records(payload, port)
        self.logger.debug("Probe succeeded", port=port, record_count=len(records))
        return records

    @staticmethod
    def parse_records(payload: Any, port: str = "") -> List[QuotaRecord]:
        """Extract quota records from a user status response.

        A missing or null model list is an empty result; anything that is not
        an object at the top or a list at the leaf is a shape error.
        """
        if not isinstance(payload, dict):
            raise ProbeError("Response is not a JSON object", port=port)

        configs = _find_model_configs(payload)
        if configs is None:
            return []
        if not isinstance(configs, list):
            raise ProbeError("clientModelConfigs is not a list", port=port)

        records = []
        for entry in configs:
            if not isinstance(entry, dict):
                continue
            try:
                record = QuotaRecord.from_model_config(entry)
            except (ValueError, OverflowError) as e:
                # ValidationError is a ValueError
                raise ProbeError("Malformed model config entry", port=port, details=str(e)) from e
            if record is not None:
                records.append(record)
        return records


def _find_model_configs(payload: Dict[str, Any]) -> Optional[Any]:
    for path in _MODEL_CONFIG_PATHS:
        node: Any = payload
        for key in path:
            if not isinstance(node, dict) or key not in node:
                node = None
                break
            node = node[key]
        if node is not None:
            return node
    return None
