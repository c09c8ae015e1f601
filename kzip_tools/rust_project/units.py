"""Compilation unit records and their proto-JSON encoding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class VName:
    """Naming tuple addressing a file or unit in the index namespace."""

    corpus: str = ""
    root: str = ""
    path: str = ""
    language: str = ""

    def to_json(self) -> dict[str, str]:
        # Field order and omission of empty values follow proto-JSON.
        result: dict[str, str] = {}
        if self.corpus:
            result["corpus"] = self.corpus
        if self.root:
            result["root"] = self.root
        if self.path:
            result["path"] = self.path
        if self.language:
            result["language"] = self.language
        return result


@dataclass(frozen=True)
class FileInfo:
    """Path and content digest of a stored file."""

    path: str
    digest: str

    def to_json(self) -> dict[str, str]:
        return {"path": self.path, "digest": self.digest}


@dataclass(frozen=True)
class FileInput:
    """A required input of a compilation unit."""

    vname: VName
    info: FileInfo

    def to_json(self) -> dict[str, Any]:
        return {"vName": self.vname.to_json(), "info": self.info.to_json()}


@dataclass
class CompilationUnit:
    """One crate's packaged sources and required inputs."""

    vname: VName
    required_input: list[FileInput] = field(default_factory=list)
    source_file: list[str] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        """Encode as a proto-JSON CompilationUnit object."""
        result: dict[str, Any] = {"vName": self.vname.to_json()}
        if self.required_input:
            result["requiredInput"] = [ri.to_json() for ri in self.required_input]
        if self.source_file:
            result["sourceFile"] = list(self.source_file)
        return result
