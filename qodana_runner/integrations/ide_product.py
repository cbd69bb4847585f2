"""Detect the IDE installation that provides the inspection engine."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from qodana_runner.domain.models import ProductInfo

logger = logging.getLogger(__name__)

IDEA = "idea"
PHPSTORM = "phpstorm"
WEBSTORM = "webstorm"
RIDER = "rider"
PYCHARM = "pycharm"
RUBYMINE = "rubymine"
GOLAND = "goland"

SUPPORTED_IDES: tuple[str, ...] = (
    IDEA,
    PHPSTORM,
    WEBSTORM,
    RIDER,
    PYCHARM,
    RUBYMINE,
    GOLAND,
)

_BASE_PRODUCT_CODES = {
    "IC": "QDJVMC",
    "PC": "QDPYC",
    "IU": "QDJVM",
    "PS": "QDPHP",
    "WS": "QDJS",
    "RD": "QDNET",
    "PY": "QDPY",
    "GO": "QDGO",
}

_SCRIPT_PRODUCT_CODES = {
    IDEA: "QDJVM",
    PHPSTORM: "QDPHP",
    WEBSTORM: "QDJS",
    RIDER: "QDNET",
    PYCHARM: "QDPY",
    RUBYMINE: "QDRUBY",
    GOLAND: "QDGO",
}


def is_docker() -> bool:
    return Path("/.dockerenv").exists()


def script_suffix(platform: str | None = None) -> str:
    if is_docker():
        return ".sh"
    current = platform or sys.platform
    if current.startswith("win"):
        return ".bat"
    if current == "darwin":
        return ""
    return ".sh"


def to_qodana_code(base_product: str) -> str:
    return _BASE_PRODUCT_CODES.get(base_product, "QD")


def script_to_product_code(script_name: str) -> str:
    return _SCRIPT_PRODUCT_CODES.get(script_name, "QD")


def find_ide(bin_dir: Path, *, suffix: str | None = None) -> str:
    """Return the launcher name found in ``bin_dir``, or ``""``."""

    resolved_suffix = script_suffix() if suffix is None else suffix
    for name in SUPPORTED_IDES:
        if (bin_dir / f"{name}{resolved_suffix}").exists():
            return name
    return ""


def read_product_info(ide_dir: Path, *, platform: str | None = None) -> dict[str, Any]:
    """Load ``product-info.json``; missing or broken files yield ``{}``."""

    root = ide_dir / "Resources" if (platform or sys.platform) == "darwin" else ide_dir
    path = root / "product-info.json"
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        logger.warning("Problem loading product-info.json: %s", exc)
        return {}
    except json.JSONDecodeError as exc:
        logger.warning("Not a valid product-info.json: %s", exc)
        return {}
    return payload if isinstance(payload, dict) else {}


def detect_product(ide_dir: Path, *, platform: str | None = None) -> ProductInfo | None:
    """Describe the IDE installed at ``ide_dir``; ``None`` when none is found."""

    suffix = script_suffix(platform)
    bin_dir = ide_dir / "bin"
    name = find_ide(bin_dir, suffix=suffix)
    if not name:
        logger.debug("No supported IDE launcher found in %s", bin_dir)
        return None
    info = read_product_info(ide_dir, platform=platform)
    base_code = str(info.get("productCode", ""))
    code = to_qodana_code(base_code) if base_code else script_to_product_code(name)
    version = str(info.get("version", ""))
    return ProductInfo(
        base_script_name=name,
        ide_dir=ide_dir,
        ide_script=bin_dir / f"{name}{suffix}",
        code=code,
        version=version,
        build=str(info.get("buildNumber", "")),
        eap="EAP" in version.upper(),
    )
