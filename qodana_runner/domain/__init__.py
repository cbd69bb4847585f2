"""Domain values and timing rules for licensed analysis runs."""

from . import models, timing

__all__ = ["models", "timing"]
