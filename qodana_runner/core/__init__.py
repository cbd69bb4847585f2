"""Configuration shared by every layer."""

from . import config

__all__ = ["config"]
