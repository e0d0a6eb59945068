"""
devc - Claude Code devcontainer helper

This package wraps the devcontainer CLI to install a sandboxed container
template, start and stop it, and manage custom bind mounts that survive
template updates.
"""

__version__ = "1.0.0"

from .cli import cli

__all__ = ["cli"]
