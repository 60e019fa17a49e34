"""
pprog - AI pair programmer

Drives a coding conversation against several model providers and lets the
model read, write and check files inside one project.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml
__version__: str = _metadata.version("pprog")

from pprog.config import Settings  # noqa: E402
from pprog.core import Chat, ChatState  # noqa: E402

__all__ = ["__version__", "Settings", "Chat", "ChatState"]
