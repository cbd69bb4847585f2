"""Local Qodana runner exposing layered application surfaces."""

from importlib import import_module

_SUBMODULES = (
    "core",
    "domain",
    "integrations",
    "application",
    "interfaces",
)

for _module_name in _SUBMODULES:
    globals()[_module_name] = import_module(f"{__name__}.{_module_name}")

__all__ = list(_SUBMODULES)
