"""
Terminal rendering for pprog.

The console renderer doubles as the tool executor's callbacks, so the
interactive loop shows every tool call and can ask before running it.
"""

from pprog.ui.console import ConsoleRenderer

__all__ = ["ConsoleRenderer"]
