from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``text`` without leaving a half-written source file.

    The file mode is carried over and symlinked targets are refused with
    ValueError("E_EXPAND_WRITE_SYMLINK").
    """
    if path.is_symlink():
        raise ValueError("E_EXPAND_WRITE_SYMLINK")
    existing_mode: int | None = None
    try:
        existing_mode = path.stat().st_mode & 0o777
    except OSError:
        existing_mode = None

    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding=encoding, newline="", delete=False, dir=path.parent, suffix=".tmp"
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        if existing_mode is not None:
            os.chmod(tmp_path, existing_mode)
        if path.is_symlink():
            raise ValueError("E_EXPAND_WRITE_SYMLINK")
        os.replace(tmp_path, path)
        tmp_path = None
        if hasattr(os, "O_DIRECTORY"):
            dir_fd = os.open(path.parent, os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
