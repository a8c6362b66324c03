"""Read-only kubeconfig inspection."""

from __future__ import annotations

import typing as typ

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kindling.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)


def kubeconfig_contexts(path: Path) -> list[str]:
    """Return the context names defined in a kubeconfig file.

    A missing file yields an empty list. An unreadable or malformed file is
    logged and also yields an empty list.
    """
    if not path.exists():
        return []

    yaml = YAML(typ="safe")
    try:
        document = yaml.load(path)
    except (OSError, YAMLError) as exc:
        log_warning(logger, "unable to read kubeconfig %s: %s", path, exc)
        return []

    if not isinstance(document, dict):
        return []
    contexts = document.get("contexts") or []
    return [
        str(entry["name"])
        for entry in contexts
        if isinstance(entry, dict) and entry.get("name")
    ]


def has_context(path: Path, context: str) -> bool:
    """Return True if ``context`` is defined in the kubeconfig at ``path``."""
    return context in kubeconfig_contexts(path)
