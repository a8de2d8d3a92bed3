"""In-memory registry of devices and their NETCONF credentials."""

import logging
import threading
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class HostParameters(BaseModel):
    """How to reach a registered host."""
    port: int = Field(default=830, ge=1, le=65535)
    user: str
    password: str = Field(default="", repr=False)


class HostRegistry:
    """Thread-safe mapping of host name to HostParameters."""

    def __init__(self):
        self._hosts: Dict[str, HostParameters] = {}
        self._lock = threading.Lock()

    def add(self, host: str, parameters: HostParameters) -> None:
        """Register a host, replacing any previous entry."""
        with self._lock:
            replaced = host in self._hosts
            self._hosts[host] = parameters
        logger.info(f"{'Updated' if replaced else 'Added'} host {host}:{parameters.port}")

    def get(self, host: str) -> Optional[HostParameters]:
        with self._lock:
            return self._hosts.get(host)

    def names(self) -> List[str]:
        with self._lock:
            return list(self._hosts)

    def __contains__(self, host: str) -> bool:
        with self._lock:
            return host in self._hosts

    def __len__(self) -> int:
        with self._lock:
            return len(self._hosts)
