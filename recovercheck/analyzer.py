"""One analysis run: seed local results, then classify every launch."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .collector import collect
from .config import Settings
from .loader import CrossModuleLoader
from .models import (
    MALFORMED_LAUNCH_MESSAGE,
    UNSAFE_GROUP_LAUNCH_MESSAGE,
    UNSAFE_LAUNCH_MESSAGE,
    CompilationUnit,
    Diagnostic,
    DiagnosticKind,
    LaunchKind,
    LaunchStatement,
)
from .parser import GoParser
from .resolver import RecoveryResolver
from .symbols import NullSymbolService, SymbolService
from .table import RecoveryTable

logger = logging.getLogger(__name__)

DiagnosticSink = Callable[[Diagnostic], None]


class RecoverAnalyzer:
    """Checks that goroutines have panic recovery logic.

    Diagnostics are pushed to *sink* as soon as they are produced.  The
    :class:`RecoveryTable` given here (or a fresh one) holds every
    cross-module result for the lifetime of the analyzer; each package gets
    its own local entries.
    """

    def __init__(
        self,
        sink: DiagnosticSink,
        settings: Optional[Settings] = None,
        table: Optional[RecoveryTable] = None,
        loader: Optional[CrossModuleLoader] = None,
    ) -> None:
        self.sink = sink
        self.settings = settings or Settings()
        self.table = table if table is not None else RecoveryTable()
        self.loader = loader if loader is not None else CrossModuleLoader()

    def analyze_unit(self, unit: CompilationUnit, symbols: Optional[SymbolService] = None) -> int:
        return self.analyze_package([(unit, symbols or NullSymbolService())])

    def analyze_package(self, units: Sequence[Tuple[CompilationUnit, SymbolService]]) -> int:
        """Analyze the files of one package and return the diagnostic count.

        Functions defined in any file of the package are visible to launches
        in every other file, as they are to the Go compiler.
        """
        if self.settings.skip_test_files:
            units = [(unit, symbols) for unit, symbols in units if not unit.is_test_file]
        if not units:
            return 0

        table = self.table.fork_local()
        definitions: dict = {}
        peers: dict = {}
        entries = []
        for unit, symbols in units:
            functions, launches = collect(
                unit, symbols, include_group_launches=self.settings.check_errgroup,
            )
            resolver = RecoveryResolver(
                table, symbols, self.loader, definitions=definitions, peers=peers,
            )
            peers[unit.path] = resolver
            entries.append((resolver, functions, launches))

        for resolver, functions, _ in entries:
            resolver.declare(functions)
        for resolver, functions, _ in entries:
            resolver.seed(functions)

        count = 0
        for resolver, _, launches in entries:
            for launch in launches:
                diagnostic = self.check_launch(resolver, launch)
                if diagnostic is not None:
                    self.sink(diagnostic)
                    count += 1
        return count

    @staticmethod
    def check_launch(resolver: RecoveryResolver, launch: LaunchStatement) -> Optional[Diagnostic]:
        if launch.callee is None:
            return Diagnostic(launch.position, MALFORMED_LAUNCH_MESSAGE, DiagnosticKind.MALFORMED_LAUNCH)
        if resolver.is_safe_launch(launch.callee):
            return None
        message = UNSAFE_GROUP_LAUNCH_MESSAGE if launch.kind is LaunchKind.GROUP else UNSAFE_LAUNCH_MESSAGE
        return Diagnostic(launch.position, message, DiagnosticKind.UNSAFE_LAUNCH)


def analyze_source(source: str, path: str = "main.go", settings: Optional[Settings] = None) -> List[Diagnostic]:
    """Analyze a single in-memory Go file with no import resolution."""
    diagnostics: List[Diagnostic] = []
    unit = GoParser().parse_source(source.encode("utf-8"), path)
    RecoverAnalyzer(diagnostics.append, settings).analyze_unit(unit)
    return diagnostics
