from __future__ import annotations

import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def test_golden_manifest_matches():
    proc = subprocess.run(
        [
            sys.executable,
            str(ROOT / "scripts" / "expand_golden_test.py"),
            "--manifest",
            str(ROOT / "tests" / "golden" / "manifest.json"),
        ],
        capture_output=True,
        text=True,
    )
    assert proc.returncode == 0, proc.stderr
    assert proc.stdout.strip() == "[OK] expand manifest"
