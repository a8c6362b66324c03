"""Application deployment inside the local cluster."""

from __future__ import annotations

from kindling.service.manager import InstallOptions, Manager, UninstallOptions

__all__ = ["InstallOptions", "Manager", "UninstallOptions"]
