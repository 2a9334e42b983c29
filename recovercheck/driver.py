"""Host driver: discovers Go files, parses them and feeds the analyzer."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .analyzer import DiagnosticSink, RecoverAnalyzer
from .config import GO_EXTENSION, SKIP_DIRS, Settings
from .loader import CrossModuleLoader
from .models import CompilationUnit, Diagnostic
from .parser import GoParser
from .symbols import GoSymbolService, GoWorkspace, SymbolService
from .table import RecoveryTable

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    files: int = 0
    packages: int = 0
    diagnostics: int = 0


def discover_go_files(paths: Iterable[Path]) -> List[Path]:
    """Return every ``.go`` file under *paths*, sorted and de-duplicated.

    Hidden directories and those in ``SKIP_DIRS`` are not entered; files
    named explicitly are always included.
    """
    found: Dict[Path, None] = {}
    for path in paths:
        if path.is_file():
            if path.suffix == GO_EXTENSION:
                found[path.resolve()] = None
            continue
        for file_path in sorted(path.rglob(f"*{GO_EXTENSION}")):
            relative = file_path.relative_to(path).parts[:-1]
            if any(part in SKIP_DIRS or part.startswith(".") for part in relative):
                continue
            if file_path.is_file():
                found[file_path.resolve()] = None
    return sorted(found)


def group_by_directory(files: Sequence[Path]) -> List[List[Path]]:
    groups: Dict[Path, List[Path]] = {}
    for file_path in files:
        groups.setdefault(file_path.parent, []).append(file_path)
    return [groups[d] for d in sorted(groups)]


class Driver:
    """Runs the recovery analysis over files and directories.

    One :class:`RecoveryTable`, loader and workspace are shared by every
    package of the run, so an external function is loaded at most once even
    when many packages launch it.
    """

    def __init__(self, settings: Optional[Settings] = None, root: Optional[Path] = None) -> None:
        self.settings = settings or Settings()
        self.root = (root or Path.cwd()).resolve()
        self.parser = GoParser()
        self.workspace = GoWorkspace(self.root, self.settings.extra_src_roots)
        self.table = RecoveryTable()
        self.loader = CrossModuleLoader(self.parser, self.workspace)

    def _analyzer(self, sink: DiagnosticSink) -> RecoverAnalyzer:
        return RecoverAnalyzer(sink, self.settings, table=self.table, loader=self.loader)

    def parse_directory(self, files: Sequence[Path]) -> List[List[Tuple[CompilationUnit, SymbolService]]]:
        """Parse the files of one directory, grouped by package clause."""
        packages: Dict[str, List[Tuple[CompilationUnit, SymbolService]]] = {}
        for file_path in files:
            unit = self.parser.parse_file(file_path)
            if unit is None:
                continue
            symbols = GoSymbolService(self.workspace, file_path.parent, unit.root)
            packages.setdefault(unit.package, []).append((unit, symbols))
        return [packages[name] for name in sorted(packages)]

    def _run_directory(self, files: Sequence[Path], sink: DiagnosticSink) -> int:
        analyzer = self._analyzer(sink)
        count = 0
        for units in self.parse_directory(files):
            count += analyzer.analyze_package(units)
        return count

    def run(self, paths: Iterable[Path], sink: DiagnosticSink) -> RunSummary:
        files = discover_go_files(paths)
        groups = group_by_directory(files)
        summary = RunSummary(files=len(files), packages=len(groups))
        logger.info("Analyzing %d files in %d directories", len(files), len(groups))

        if self.settings.jobs <= 1 or len(groups) <= 1:
            for group in groups:
                summary.diagnostics += self._run_directory(group, sink)
            return summary

        def _buffered(group: List[Path]) -> List[Diagnostic]:
            buffer: List[Diagnostic] = []
            self._run_directory(group, buffer.append)
            return buffer

        with ThreadPoolExecutor(max_workers=self.settings.jobs) as executor:
            futures = [executor.submit(_buffered, group) for group in groups]
            # Emit in discovery order regardless of completion order.
            for future in futures:
                for diagnostic in future.result():
                    sink(diagnostic)
                    summary.diagnostics += 1
        return summary
