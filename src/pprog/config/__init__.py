"""
Configuration management for pprog.

Uses pydantic-settings for environment variables and a project-level
pprog.yaml file.
"""

from pprog.config.settings import (
    Settings,
    detect_check_cmd,
    find_git_root,
    find_project_root,
)

__all__ = ["Settings", "detect_check_cmd", "find_git_root", "find_project_root"]
