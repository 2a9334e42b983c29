"""On-demand loading of functions declared in other packages."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

from .models import FunctionDefinition
from .parser import GoParser, node_text
from .resolver import RecoveryResolver
from .symbols import GoSymbolService, GoWorkspace, NullSymbolService, SymbolService
from .table import RecoveryTable, Role

logger = logging.getLogger(__name__)


def top_level_functions(root: Any, path: str) -> List[FunctionDefinition]:
    functions: List[FunctionDefinition] = []
    for child in root.named_children:
        if child.type != "function_declaration":
            continue
        name_node = child.child_by_field_name("name")
        body = child.child_by_field_name("body")
        if name_node is None or body is None:
            continue
        functions.append(FunctionDefinition(
            name=node_text(name_node), body=body, unit_path=path, line=child.start_point[0] + 1,
        ))
    return functions


class LoadedFunction(NamedTuple):
    function: FunctionDefinition
    resolver: RecoveryResolver


class CrossModuleLoader:
    """Resolves ``pkg.Func`` by parsing only the file that declares ``Func``.

    Failures of any kind (package not found, unreadable file, no matching
    declaration) classify the reference as unsafe and are never raised.
    Each qualified key is loaded at most once per loader: the parsed
    declaration is kept and answers both the guard and the handler question.
    Results themselves are memoized in the caller's :class:`RecoveryTable`.
    """

    def __init__(self, parser: Optional[GoParser] = None, workspace: Optional[GoWorkspace] = None) -> None:
        self.parser = parser or GoParser()
        self.workspace = workspace
        self.loads = 0
        self._loaded: Dict[str, Optional[LoadedFunction]] = {}

    def resolve(
        self,
        table: RecoveryTable,
        symbols: SymbolService,
        qualifier: str,
        symbol: str,
        role: Role,
    ) -> bool:
        # Called under the table lock, so the cache needs no lock of its own.
        key = symbols.qualified_key(qualifier, symbol)
        if key not in self._loaded:
            self._loaded[key] = self._load(table, symbols, qualifier, symbol)
        loaded = self._loaded[key]
        if loaded is None:
            return False
        if role is Role.GUARD:
            return loaded.resolver.body_guarded(loaded.function.body)
        return loaded.resolver.body_handles(loaded.function.body)

    def _load(
        self,
        table: RecoveryTable,
        symbols: SymbolService,
        qualifier: str,
        symbol: str,
    ) -> Optional[LoadedFunction]:
        self.loads += 1
        declaration = symbols.lookup(qualifier, symbol)
        if declaration is None:
            logger.debug("No declaration found for %s.%s", qualifier, symbol)
            return None

        file_path = Path(declaration.file)
        try:
            source = file_path.read_bytes()
        except OSError as exc:
            logger.debug("Cannot load %s for %s.%s: %s", file_path, qualifier, symbol, exc)
            return None
        unit = self.parser.parse_source(source, str(file_path))

        functions = top_level_functions(unit.root, unit.path)
        target = next((fn for fn in functions if fn.name == symbol), None)
        if target is None:
            logger.debug("%s does not define %s", file_path, symbol)
            return None

        logger.debug("Loaded %s.%s from %s:%d", declaration.import_path, symbol, file_path, target.line)
        if self.workspace is not None:
            external_symbols: SymbolService = GoSymbolService(self.workspace, file_path.parent, unit.root)
        else:
            external_symbols = NullSymbolService()
        resolver = RecoveryResolver(table.fork_local(), external_symbols, loader=self)
        resolver.declare(functions)
        return LoadedFunction(target, resolver)
