from __future__ import annotations

import os

import pytest

from erase_serde_skip.io_atomic import atomic_write_text


def test_rewrite_keeps_mode_and_newlines(tmp_path):
    target = tmp_path / "lib.rs"
    target.write_bytes(b"struct A;\r\n")
    os.chmod(target, 0o640)
    atomic_write_text(target, "struct B;\r\n")
    assert target.read_bytes() == b"struct B;\r\n"
    assert target.stat().st_mode & 0o777 == 0o640
    assert [p.name for p in tmp_path.iterdir()] == ["lib.rs"]


def test_symlink_target_is_refused(tmp_path):
    real = tmp_path / "real.rs"
    real.write_text("struct A;\n", encoding="utf-8")
    link = tmp_path / "link.rs"
    link.symlink_to(real)
    with pytest.raises(ValueError, match="E_EXPAND_WRITE_SYMLINK"):
        atomic_write_text(link, "struct B;\n")
    assert real.read_text(encoding="utf-8") == "struct A;\n"
    assert link.is_symlink()


@pytest.mark.skipif(not hasattr(os, "O_DIRECTORY"), reason="directory fsync needs O_DIRECTORY")
def test_file_and_directory_are_synced(tmp_path, monkeypatch):
    synced: list[int] = []
    real_fsync = os.fsync

    def _fsync(fd):
        synced.append(fd)
        real_fsync(fd)

    monkeypatch.setattr(os, "fsync", _fsync)
    atomic_write_text(tmp_path / "lib.rs", "struct A;\n")
    assert len(synced) == 2
