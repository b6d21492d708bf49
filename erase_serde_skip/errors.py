from __future__ import annotations

from dataclasses import dataclass, replace


def _escape_json_pointer_segment(segment: str) -> str:
    return segment.replace("~", "~0").replace("/", "~1")


def json_pointer(*segments: str) -> str:
    if not segments:
        return ""
    return "/" + "/".join(_escape_json_pointer_segment(s) for s in segments)


@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    expected: str
    got: str
    path: str
    location: str = ""

    def to_dict(self) -> dict[str, str]:
        data = {
            "code": self.code,
            "message": self.message,
            "expected": self.expected,
            "got": self.got,
            "path": self.path,
        }
        if self.location:
            data["location"] = self.location
        return data


class EraseError(Exception):
    pass


class DefinitionSyntaxError(EraseError):
    def __init__(self, diagnostic: Diagnostic, offset: int) -> None:
        super().__init__(f"{diagnostic.code}: {diagnostic.message}")
        self.diagnostic = diagnostic
        self.offset = offset

    def shifted(self, delta: int) -> "DefinitionSyntaxError":
        return DefinitionSyntaxError(self.diagnostic, self.offset + delta)

    def located(self, location: str) -> Diagnostic:
        return replace(self.diagnostic, location=location)


class MetadataSyntaxError(EraseError):
    pass


def syntax_error(code: str, message: str, expected: str, got: str, offset: int, *segments: str) -> DefinitionSyntaxError:
    diagnostic = Diagnostic(code=code, message=message, expected=expected, got=got, path=json_pointer(*segments))
    return DefinitionSyntaxError(diagnostic, offset)
