"""Host validation helpers used before touching the cluster.

- ``require_exe``: verifies CLI tools (kind, kubectl, helm) are on PATH
- ``pick_free_loopback_port``: allocates a port for the ingress mapping
"""

from __future__ import annotations

import shutil
import socket

from kindling.errors import ExecutableNotFoundError


def require_exe(name: str) -> None:
    """Verify a CLI tool is available in PATH.

    Raises
    ------
    ExecutableNotFoundError
        If the executable is not found in PATH.

    """
    if shutil.which(name) is None:
        raise ExecutableNotFoundError.missing(name)


def pick_free_loopback_port() -> int:
    """Find an available TCP port on 127.0.0.1.

    Notes
    -----
    Another process may claim the port between this call and the cluster
    binding it; cluster creation then fails and reports the port.

    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]
