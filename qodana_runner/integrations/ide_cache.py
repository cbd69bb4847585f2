"""Keep the project's ``.idea`` directory in step with the run cache."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def _copy_missing(src: Path, dst: Path) -> None:
    dst.mkdir(parents=True, exist_ok=True)
    for entry in src.iterdir():
        target = dst / entry.name
        if entry.is_dir():
            if not target.exists():
                shutil.copytree(entry, target)
        elif not target.exists():
            shutil.copy2(entry, target)


def sync_ide_cache(source_root: Path, target_root: Path, *, overwrite: bool) -> bool:
    """Copy ``source_root/.idea`` into ``target_root/.idea``.

    With ``overwrite`` existing directories are merged and files replaced;
    without it anything already present is left untouched. Returns ``False``
    when there is nothing to copy.
    """

    src = source_root / ".idea"
    if not src.is_dir():
        return False
    dst = target_root / ".idea"
    logger.info("Sync IDE cache from: %s to: %s", src, dst)
    if overwrite:
        shutil.copytree(src, dst, dirs_exist_ok=True)
    else:
        _copy_missing(src, dst)
    return True


def prepare_directories(*directories: Path) -> None:
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
