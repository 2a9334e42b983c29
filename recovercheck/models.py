"""Core data models shared by the collector, resolver, loader and driver."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

UNSAFE_LAUNCH_MESSAGE = "goroutine created without panic recovery"
UNSAFE_GROUP_LAUNCH_MESSAGE = "errgroup goroutine created without panic recovery"
MALFORMED_LAUNCH_MESSAGE = "go statement without call expression"


class DiagnosticKind(str, Enum):
    UNSAFE_LAUNCH = "unsafe-launch"
    MALFORMED_LAUNCH = "malformed-launch"


class CallableShape(str, Enum):
    """The syntactic shape of a launched or deferred callable."""

    CLOSURE = "closure"
    LOCAL = "local"
    QUALIFIED = "qualified"
    OTHER = "other"


class LaunchKind(str, Enum):
    GO = "go"
    GROUP = "group"


@dataclass(frozen=True)
class Position:
    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class CompilationUnit:
    """One parsed Go source file.

    ``root`` is the tree-sitter ``source_file`` node.  Units are owned by the
    host driver and only ever read by the analysis.
    """

    path: str
    source: bytes
    root: Any
    package: str = ""

    @property
    def is_test_file(self) -> bool:
        return self.path.endswith("_test.go")

    def position_of(self, ts_node: Any) -> Position:
        row, column = ts_node.start_point[0], ts_node.start_point[1]
        return Position(self.path, row + 1, column + 1)


@dataclass(frozen=True)
class FunctionDefinition:
    name: str
    body: Any
    unit_path: str
    line: int
    receiver: str = ""


@dataclass(frozen=True)
class CallableRef:
    """A callable expression classified by shape.

    ``node`` is the unwrapped expression; ``qualifier`` and ``name`` are set
    for qualified references, ``name`` alone for local references.
    """

    shape: CallableShape
    node: Any = None
    name: str = ""
    qualifier: str = ""


@dataclass(frozen=True)
class LaunchStatement:
    position: Position
    kind: LaunchKind
    callee: Optional[CallableRef]


@dataclass(frozen=True)
class Diagnostic:
    position: Position
    message: str
    kind: DiagnosticKind

    def to_dict(self) -> dict:
        return {
            "file": self.position.file,
            "line": self.position.line,
            "column": self.position.column,
            "message": self.message,
            "kind": self.kind.value,
        }


@dataclass
class CollectedNodes:
    functions: List[FunctionDefinition] = field(default_factory=list)
    launches: List[LaunchStatement] = field(default_factory=list)

    def as_tuple(self) -> Tuple[List[FunctionDefinition], List[LaunchStatement]]:
        return self.functions, self.launches
