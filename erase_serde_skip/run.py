from __future__ import annotations

import argparse
import difflib
import json
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG, Config, ConfigError, load_config
from .errors import DefinitionSyntaxError, Diagnostic, json_pointer
from .expand import expand, rewrite_source
from .io_atomic import atomic_write_text


def _print_diagnostics(diags: list[Diagnostic]) -> None:
    payload = [d.to_dict() for d in diags]
    print(json.dumps(payload, ensure_ascii=False, indent=2), file=sys.stderr)


def format_location(source: str, text: str, offset: int) -> str:
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    col = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return f"{source}:{line}:{col}"


def _read_source(path: Path) -> str:
    with path.open("r", encoding="utf-8", newline="") as f:
        return f.read()


def _read_failed(source: str, exc: Exception) -> Diagnostic:
    return Diagnostic(
        code="E_EXPAND_SOURCE_READ_FAILED",
        message="source must be a readable UTF-8 file",
        expected="readable UTF-8 file",
        got=str(exc),
        path=json_pointer(),
        location=source,
    )


def _write_failed(path: Path, code: str, message: str, got: str) -> Diagnostic:
    return Diagnostic(
        code=code,
        message=message,
        expected="writable regular file",
        got=got,
        path=json_pointer(),
        location=str(path),
    )


def iter_source_files(path: Path, config: Config) -> list[Path]:
    if path.is_file():
        return [path]
    files: list[Path] = []
    for candidate in sorted(path.rglob("*")):
        if not candidate.is_file() or not candidate.name.endswith(config.suffixes):
            continue
        rel_parts = candidate.relative_to(path).parts[:-1]
        if any(part in config.exclude_dirs for part in rel_parts):
            continue
        files.append(candidate)
    return files


def _unified_diff(path: Path, original: str, updated: str) -> str:
    diff = difflib.unified_diff(
        original.splitlines(),
        updated.splitlines(),
        fromfile=str(path),
        tofile=str(path),
        lineterm="",
    )
    return "\n".join(diff) + "\n"


def _run_item(raw: str, config: Config) -> int:
    source = "<stdin>" if raw == "-" else raw
    try:
        text = sys.stdin.read() if raw == "-" else _read_source(Path(raw))
    except (OSError, UnicodeDecodeError) as exc:
        _print_diagnostics([_read_failed(source, exc)])
        return 2
    try:
        output = expand(text, config.markers)
    except DefinitionSyntaxError as exc:
        _print_diagnostics([exc.located(format_location(source, text, exc.offset))])
        return 2
    sys.stdout.write(output)
    return 0


def _run_input(args: argparse.Namespace, config: Config) -> int:
    root = Path(args.input)
    if not root.exists():
        print(f"E_INPUT_NOT_FOUND: {root}", file=sys.stderr)
        return 2
    files = iter_source_files(root, config)
    if not files:
        print(f"E_INPUT_NOT_FOUND: no {'/'.join(config.suffixes)} files", file=sys.stderr)
        return 2

    diags: list[Diagnostic] = []
    changes: list[tuple[Path, str, str]] = []
    for file_path in files:
        try:
            text = _read_source(file_path)
        except (OSError, UnicodeDecodeError) as exc:
            diags.append(_read_failed(str(file_path), exc))
            continue
        try:
            updated, count = rewrite_source(text, config.markers)
        except DefinitionSyntaxError as exc:
            diags.append(exc.located(format_location(str(file_path), text, exc.offset)))
            continue
        if count and updated != text:
            changes.append((file_path, text, updated))

    if diags:
        _print_diagnostics(diags)
        return 2

    if args.write:
        linked = [
            _write_failed(path, "E_EXPAND_WRITE_SYMLINK", "rewrite target must not be a symlink", "symlink")
            for path, _, _ in changes
            if path.is_symlink()
        ]
        if linked:
            _print_diagnostics(linked)
            return 2
        for file_path, _, updated in changes:
            try:
                atomic_write_text(file_path, updated)
            except ValueError as exc:
                _print_diagnostics(
                    [_write_failed(file_path, str(exc), "rewrite target must not be a symlink", "symlink")]
                )
                return 2
            except OSError as exc:
                _print_diagnostics(
                    [_write_failed(file_path, "E_EXPAND_WRITE_FAILED", "rewrite target must be writable", str(exc))]
                )
                return 2
            print(f"[OK] rewrote {file_path}")
        return 0

    if not changes:
        return 0
    diff_text = "".join(_unified_diff(path, old, new) for path, old, new in changes)
    if args.out:
        out_path = Path(args.out)
        if out_path.is_symlink():
            print("E_EXPAND_OUTPUT_SYMLINK", file=sys.stderr)
            return 2
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(diff_text, encoding="utf-8")
    else:
        print(diff_text, end="")
    return 0 if args.allow_diff else 2


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="erase-serde-skip",
        description="Remove skip_serializing_if from serde field attributes of marked items.",
    )
    source = ap.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="Path to .rs file or directory; marked items are rewritten.")
    source.add_argument("--item", help="Path to a single type definition ('-' for stdin); prints the expansion.")
    ap.add_argument("--config", default=None, help="Path to config JSON (erase-config-v0.1).")
    ap.add_argument("--write", action="store_true", help="Rewrite changed files in place.")
    ap.add_argument("--out", default=None, help="Write unified diff to this path (default: stdout)")
    ap.add_argument("--allow-diff", action="store_true", help="Exit 0 even when a diff is produced")
    args = ap.parse_args(argv)
    if args.item is not None:
        for flag, value in (("--write", args.write), ("--out", args.out), ("--allow-diff", args.allow_diff)):
            if value:
                ap.error(f"argument {flag}: not allowed with argument --item")

    config = DEFAULT_CONFIG
    if args.config:
        try:
            config = load_config(Path(args.config))
        except ConfigError as exc:
            print(str(exc), file=sys.stderr)
            return 2

    if args.item is not None:
        return _run_item(args.item, config)
    return _run_input(args, config)


if __name__ == "__main__":
    raise SystemExit(main())
