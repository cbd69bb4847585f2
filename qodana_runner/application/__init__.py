"""Application services orchestrating a local analysis run."""

from . import completion, ide_args, licensing, runner

__all__ = ["completion", "ide_args", "licensing", "runner"]
