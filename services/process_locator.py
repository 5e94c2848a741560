"""Language server process discovery."""

import re
from typing import Optional

from config import MonitorConfig
from models import ProcessInfo
from utils import create_contextual_logger, log_exception
from .exceptions import InspectorError
from .process_inspector import SystemProcessInspector, is_valid_pid


class ProcessLocator:
    """Finds the language server process and the auth token it was launched with."""

    def __init__(self, config: MonitorConfig, inspector: SystemProcessInspector) -> None:
        self.config = config
        self.inspector = inspector
        self.logger = create_contextual_logger(__name__, service="process_locator")
        # Accepts both "--flag value" and "--flag=value"
        self._token_pattern = re.compile(re.escape(config.auth_token_flag) + r"(?:=|\s+)(\S+)")

    def locate(self) -> Optional[ProcessInfo]:
        """Return the first matching process, or None when it is not running.

        A process whose id is not purely numeric is skipped as if it did not
        match. A missing token flag yields an empty token.
        """
        try:
            processes = self.inspector.list_processes()
        except InspectorError as e:
            log_exception(
                self.logger,
                e,
                "Process enumeration failed",
                level="warning",
                operation=e.operation,
            )
            return None

        for entry in processes:
            if self.config.process_signature not in entry.command_line:
                continue
            pid = str(entry.pid)
            if not is_valid_pid(pid):
                self.logger.warning("Ignoring matching process with non-numeric id", pid=pid)
                continue

            auth_token = self.extract_auth_token(entry.command_line)
            self.logger.debug(
                "Language server process located",
                pid=pid,
                has_auth_token=bool(auth_token),
            )
            return ProcessInfo(process_id=pid, auth_token=auth_token)

        self.logger.debug("No language server process running", signature=self.config.process_signature)
        return None

    def extract_auth_token(self, command_line: str) -> str:
        match = self._token_pattern.search(command_line)
        return match.group(1) if match else ""
