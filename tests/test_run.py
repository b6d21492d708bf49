from __future__ import annotations

import io
import json

import pytest

from erase_serde_skip.run import main


MARKED = (
    "#[erase_skip_serializing_if]\n"
    "#[derive(Serialize)]\n"
    "struct Foo {\n"
    "    a: u8,\n"
    "    #[serde(skip_serializing_if = \"Option::is_none\")]\n"
    "    b: Option<u32>,\n"
    "}\n"
)
EXPANDED = (
    "#[derive(Serialize)]\n"
    "struct Foo {\n"
    "    a: u8,\n"
    "    b: Option<u32>,\n"
    "}\n"
)


def test_item_mode_prints_expansion(tmp_path, capsys):
    item = tmp_path / "foo.rs"
    item.write_text(MARKED, encoding="utf-8")
    assert main(["--item", str(item)]) == 0
    assert capsys.readouterr().out == EXPANDED


def test_item_mode_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO(MARKED))
    assert main(["--item", "-"]) == 0
    assert capsys.readouterr().out == EXPANDED


def test_input_mode_prints_diff_and_fails_without_allow_diff(tmp_path, capsys):
    src = tmp_path / "src"
    src.mkdir()
    (src / "lib.rs").write_text(MARKED, encoding="utf-8")
    assert main(["--input", str(src)]) == 2
    out = capsys.readouterr().out
    assert "-#[erase_skip_serializing_if]" in out
    assert "-    #[serde(skip_serializing_if = \"Option::is_none\")]" in out
    assert main(["--input", str(src), "--allow-diff"]) == 0


def test_input_mode_writes_diff_to_out(tmp_path, capsys):
    (tmp_path / "lib.rs").write_text(MARKED, encoding="utf-8")
    out_path = tmp_path / "OUTPUT" / "erase.diff"
    assert main(["--input", str(tmp_path / "lib.rs"), "--out", str(out_path), "--allow-diff"]) == 0
    assert capsys.readouterr().out == ""
    assert out_path.read_text(encoding="utf-8").startswith(f"--- {tmp_path / 'lib.rs'}")


def test_write_mode_rewrites_in_place(tmp_path, capsys):
    target = tmp_path / "lib.rs"
    target.write_text(MARKED, encoding="utf-8")
    assert main(["--input", str(tmp_path), "--write"]) == 0
    assert target.read_text(encoding="utf-8") == EXPANDED
    assert "[OK] rewrote" in capsys.readouterr().out
    assert main(["--input", str(tmp_path)]) == 0


def test_write_mode_keeps_crlf(tmp_path):
    target = tmp_path / "lib.rs"
    target.write_bytes(MARKED.replace("\n", "\r\n").encode("utf-8"))
    assert main(["--input", str(target), "--write"]) == 0
    assert target.read_bytes() == EXPANDED.replace("\n", "\r\n").encode("utf-8")


def test_excluded_directories_are_skipped(tmp_path, capsys):
    (tmp_path / "target").mkdir()
    (tmp_path / "target" / "gen.rs").write_text(MARKED, encoding="utf-8")
    (tmp_path / "lib.rs").write_text("struct A;\n", encoding="utf-8")
    assert main(["--input", str(tmp_path)]) == 0
    assert capsys.readouterr().out == ""


def test_syntax_error_is_reported_with_location(tmp_path, capsys):
    target = tmp_path / "lib.rs"
    target.write_text("use x;\n#[erase_skip_serializing_if]\nstruct B {\n    a: u8,,\n}\n", encoding="utf-8")
    assert main(["--input", str(target)]) == 2
    diags = json.loads(capsys.readouterr().err)
    assert diags == [
        {
            "code": "E_EXPAND_FIELD_EMPTY",
            "message": "empty field between separators",
            "expected": "field",
            "got": ",",
            "path": "/fields/1",
            "location": f"{target}:4:11",
        }
    ]


def test_missing_input_and_config(tmp_path, capsys):
    assert main(["--input", str(tmp_path / "nope")]) == 2
    assert "E_INPUT_NOT_FOUND" in capsys.readouterr().err
    (tmp_path / "lib.rs").write_text("struct A;\n", encoding="utf-8")
    assert main(["--input", str(tmp_path), "--config", str(tmp_path / "none.json")]) == 2
    assert "CONFIG_NOT_FOUND" in capsys.readouterr().err


def test_config_markers_apply(tmp_path, capsys):
    config = tmp_path / "erase.json"
    config.write_text(json.dumps({"version": "erase-config-v0.1", "markers": ["always_serialize"]}), encoding="utf-8")
    item = tmp_path / "item.rs"
    item.write_text(MARKED.replace("erase_skip_serializing_if]", "always_serialize]"), encoding="utf-8")
    assert main(["--item", str(item), "--config", str(config)]) == 0
    assert capsys.readouterr().out == EXPANDED


def test_write_mode_refuses_symlinks_before_touching_any_file(tmp_path, capsys):
    src = tmp_path / "src"
    src.mkdir()
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    (src / "a.rs").write_text(MARKED, encoding="utf-8")
    (elsewhere / "b.rs").write_text(MARKED, encoding="utf-8")
    (src / "b.rs").symlink_to(elsewhere / "b.rs")
    assert main(["--input", str(src), "--write"]) == 2
    assert (src / "a.rs").read_text(encoding="utf-8") == MARKED
    assert (elsewhere / "b.rs").read_text(encoding="utf-8") == MARKED
    diags = json.loads(capsys.readouterr().err)
    assert [d["code"] for d in diags] == ["E_EXPAND_WRITE_SYMLINK"]
    assert diags[0]["location"] == str(src / "b.rs")


def test_write_failure_is_reported_as_diagnostic(tmp_path, monkeypatch, capsys):
    (tmp_path / "lib.rs").write_text(MARKED, encoding="utf-8")

    def _fail(path, text, encoding="utf-8"):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr("erase_serde_skip.run.atomic_write_text", _fail)
    assert main(["--input", str(tmp_path), "--write"]) == 2
    diags = json.loads(capsys.readouterr().err)
    assert diags[0]["code"] == "E_EXPAND_WRITE_FAILED"
    assert "Permission denied" in diags[0]["got"]


@pytest.mark.parametrize("extra", [["--write"], ["--out", "diff.txt"], ["--allow-diff"]])
def test_item_mode_rejects_input_only_flags(tmp_path, capsys, extra):
    item = tmp_path / "foo.rs"
    item.write_text(MARKED, encoding="utf-8")
    with pytest.raises(SystemExit) as exc:
        main(["--item", str(item), *extra])
    assert exc.value.code == 2
    assert "not allowed with argument --item" in capsys.readouterr().err
