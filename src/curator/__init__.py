"""Curator - moderation-gated image gallery."""

__version__ = "0.1.0"

from curator.core.config import CuratorConfig, config

__all__ = [
    "CuratorConfig",
    "config",
]
