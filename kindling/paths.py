"""Well-known filesystem locations.

``KINDLING_HOME`` relocates the whole tree; it defaults to ``~/.kindling``.
"""

from __future__ import annotations

import os
from pathlib import Path

FILE_KUBECONFIG = "kindling.kubeconfig"

_HOME_ENV = "KINDLING_HOME"


def user_home() -> Path:
    """Return the invoking user's home directory."""
    return Path.home()


def kindling_home() -> Path:
    """Return the base directory for kindling state."""
    override = os.environ.get(_HOME_ENV)
    if override:
        return Path(override).expanduser()
    return user_home() / ".kindling"


def kubeconfig() -> Path:
    """Return the kubeconfig path used by the default profile."""
    return kindling_home() / FILE_KUBECONFIG


def data_dir() -> Path:
    """Return the directory holding persisted application data."""
    return kindling_home() / "data"
