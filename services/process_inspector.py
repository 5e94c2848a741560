"""Operating system process and socket inspection.

``SystemProcessInspector`` is the seam the locator and scanner depend on;
``PsutilProcessInspector`` implements it on every platform psutil supports.
Process ids are checked to be plain ASCII digits before they are used in any
OS query.
"""

import re
from abc import ABC, abstractmethod
from collections import namedtuple
from typing import Iterable, List, Sequence

import psutil

from utils import create_contextual_logger
from .exceptions import InspectorError

# One row of the process table
ProcessEntry = namedtuple("ProcessEntry", ["pid", "command_line"])

_PID_PATTERN = re.compile(r"[0-9]+")


def is_valid_pid(process_id: object) -> bool:
    """Return True only for a non-empty string of ASCII digits."""
    return isinstance(process_id, str) and _PID_PATTERN.fullmatch(process_id) is not None


def _dedupe(ports: Sequence[str]) -> List[str]:
    """Drop duplicate ports, keeping first-seen order."""
    return list(dict.fromkeys(ports))


def listening_ports_from(connections: Iterable, pid: int) -> List[str]:
    """Filter psutil connection tuples down to TCP listeners owned by ``pid``.

    Per-process results carry no pid, so a missing pid counts as a match.
    """
    ports = []
    for conn in connections:
        if conn.status != psutil.CONN_LISTEN or not conn.laddr:
            continue
        owner = getattr(conn, "pid", None)
        if owner is not None and owner != pid:
            continue
        ports.append(str(conn.laddr.port))
    return _dedupe(ports)


class SystemProcessInspector(ABC):
    """Read-only access to the process table and listening sockets."""

    def __init__(self) -> None:
        self.logger = create_contextual_logger(__name__, service=self.__class__.__name__)

    @abstractmethod
    def list_processes(self) -> List[ProcessEntry]:
        """Return every visible process in enumeration order."""

    @abstractmethod
    def listening_ports(self, process_id: str) -> List[str]:
        """Return the TCP ports ``process_id`` is listening on."""

    def _require_pid(self, process_id: str) -> int:
        if not is_valid_pid(process_id):
            raise ValueError(f"process id must be numeric, got {process_id!r}")
        return int(process_id)


class PsutilProcessInspector(SystemProcessInspector):
    """psutil-backed inspector for Linux, macOS and Windows.

    Ports are read from the process itself first. When the OS denies that,
    the system-wide TCP table is filtered by owner instead. Socket states come
    from psutil constants, so the result does not depend on the OS locale.
    """

    def list_processes(self) -> List[ProcessEntry]:
        entries = []
        try:
            for proc in psutil.process_iter(["pid", "cmdline"]):
                # Denied attributes come back as None
                cmdline = proc.info["cmdline"] or []
                if not cmdline:
                    continue
                entries.append(ProcessEntry(pid=str(proc.info["pid"]), command_line=" ".join(cmdline)))
        except psutil.Error as e:
            raise InspectorError("Process enumeration failed", operation="process_iter", details=str(e)) from e
        return entries

    def listening_ports(self, process_id: str) -> List[str]:
        pid = self._require_pid(process_id)
        try:
            connections = psutil.Process(pid).net_connections(kind="tcp")
        except psutil.NoSuchProcess as e:
            raise InspectorError(
                f"Process {pid} no longer exists", operation="Process.net_connections", details=str(e)
            ) from e
        except psutil.AccessDenied:
            self.logger.debug("Per-process socket query denied, scanning system table", pid=process_id)
            return self._listening_ports_system_wide(pid)
        return listening_ports_from(connections, pid)

    def _listening_ports_system_wide(self, pid: int) -> List[str]:
        try:
            connections = psutil.net_connections(kind="tcp")
        except psutil.Error as e:
            raise InspectorError("System socket table unavailable", operation="net_connections", details=str(e)) from e
        return listening_ports_from(connections, pid)


def get_process_inspector() -> SystemProcessInspector:
    """Return the inspector for the running platform."""
    return PsutilProcessInspector()
