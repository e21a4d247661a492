from .core import ServiceLauncher
from .readiness import port_accepts_connections, wait_for_port

__all__ = [
    "ServiceLauncher",
    "port_accepts_connections",
    "wait_for_port",
]
