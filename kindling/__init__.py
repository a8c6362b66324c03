"""Local environment lifecycle manager.

kindling connects to the local container runtime, provisions or attaches to a
single-node kind cluster, and installs or tears down the application stack
inside it.
"""

from __future__ import annotations

__version__ = "0.1.0"
