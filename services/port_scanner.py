"""Listening port discovery for a located process."""

from typing import List

from utils import create_contextual_logger, log_exception
from .exceptions import InspectorError
from .process_inspector import SystemProcessInspector, is_valid_pid


class PortScanner:
    """Lists the TCP ports a process is listening on."""

    def __init__(self, inspector: SystemProcessInspector) -> None:
        self.inspector = inspector
        self.logger = create_contextual_logger(__name__, service="port_scanner")

    def listening_ports(self, process_id: str) -> List[str]:
        """Return deduplicated listening ports in the order the OS reported them.

        A non-numeric ``process_id`` is rejected before any OS query runs.
        """
        if not is_valid_pid(process_id):
            self.logger.warning("Rejected non-numeric process id", pid=repr(process_id))
            return []

        try:
            ports = self.inspector.listening_ports(process_id)
        except InspectorError as e:
            log_exception(
                self.logger,
                e,
                "Listening port enumeration failed",
                level="warning",
                pid=process_id,
                operation=e.operation,
            )
            return []

        ports = list(dict.fromkeys(ports))
        self.logger.debug("Listening ports found", pid=process_id, ports=ports)
        return ports
