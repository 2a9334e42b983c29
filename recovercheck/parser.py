"""Go source parser built on Tree-sitter.

Tree-sitter produces a concrete syntax tree that survives broken or
incomplete syntax, so a file with a stray error still yields every
declaration and statement that can be recovered around the error.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Iterator, Optional

import tree_sitter_go
from tree_sitter import Language, Parser as TSParser

from .models import CompilationUnit

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(tree_sitter_go.language())

# Node types that start a new function scope.  A ``defer`` inside one of
# these registers on the nested function, not on the enclosing one.
FUNCTION_SCOPES = frozenset({"func_literal", "function_declaration", "method_declaration"})


class GoParser:
    """Parses Go files into :class:`CompilationUnit` values.

    A tree-sitter ``Parser`` is not safe to share between threads, so one is
    created lazily per thread while the compiled grammar is shared.
    """

    def __init__(self) -> None:
        self._local = threading.local()

    def _ts_parser(self) -> TSParser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = TSParser(GO_LANGUAGE)
            self._local.parser = parser
            logger.debug("Created tree-sitter Go parser for thread %s", threading.get_ident())
        return parser

    def parse_source(self, source: bytes, path: str = "<memory>") -> CompilationUnit:
        tree = self._ts_parser().parse(source)
        root = tree.root_node
        if root.has_error:
            logger.debug("Syntax errors in %s; continuing with recovered tree", path)
        return CompilationUnit(path=path, source=source, root=root, package=package_name(root))

    def parse_file(self, file_path: Path, source: Optional[bytes] = None) -> Optional[CompilationUnit]:
        """Parse *file_path*, returning ``None`` when it cannot be read."""
        if source is None:
            try:
                source = file_path.read_bytes()
            except OSError as exc:
                logger.warning("Failed to read %s: %s", file_path, exc)
                return None
        return self.parse_source(source, str(file_path))


# ===================================================================
# Tree helpers
# ===================================================================

def node_text(ts_node: Any) -> str:
    if ts_node is None or ts_node.text is None:
        return ""
    return ts_node.text.decode("utf-8", errors="replace")


def unwrap_parens(ts_node: Any) -> Any:
    """Strip any number of enclosing parentheses from an expression."""
    while ts_node is not None and ts_node.type == "parenthesized_expression":
        inner = [ch for ch in ts_node.named_children if ch.type != "comment"]
        ts_node = inner[0] if inner else None
    return ts_node


def first_expression(ts_node: Any) -> Any:
    """Return the operand of a ``go`` / ``defer`` statement, if any."""
    for child in ts_node.named_children:
        if child.type == "comment":
            continue
        return child
    return None


def walk_scope(ts_node: Any) -> Iterator[Any]:
    """Yield every descendant of *ts_node* in source order without
    entering nested function scopes.

    Blocks, conditionals, loops, ``switch``/``select`` cases and labeled
    statements are all traversed, whatever wrapper nodes the grammar
    version puts between a block and its statements.
    """
    stack = list(reversed(ts_node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_SCOPES:
            continue
        stack.extend(reversed(current.children))


def walk_all(ts_node: Any) -> Iterator[Any]:
    """Yield every descendant of *ts_node* in source order."""
    stack = list(reversed(ts_node.children))
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def package_name(root: Any) -> str:
    for child in root.named_children:
        if child.type == "package_clause":
            for sub in child.named_children:
                if sub.type == "package_identifier":
                    return node_text(sub)
    return ""


def _identifiers(expr: Any) -> Iterator[str]:
    if expr is None:
        return
    if expr.type == "identifier":
        yield node_text(expr)
        return
    for child in expr.named_children:
        if child.type == "identifier":
            yield node_text(child)


def _bound_names(ts_node: Any) -> Iterator[str]:
    """Names introduced by a declaration-like child of a scope."""
    kind = ts_node.type
    if kind in ("short_var_declaration", "range_clause", "receive_statement"):
        yield from _identifiers(ts_node.child_by_field_name("left"))
    elif kind == "for_clause":
        initializer = ts_node.child_by_field_name("initializer")
        if initializer is not None:
            yield from _bound_names(initializer)
    elif kind == "var_declaration":
        for spec in walk_scope(ts_node):
            if spec.type == "var_spec":
                for name in spec.children_by_field_name("name"):
                    yield node_text(name)
    elif kind == "parameter_list":
        for param in ts_node.named_children:
            for name in param.children_by_field_name("name"):
                yield node_text(name)


def is_locally_bound(ident: Any) -> bool:
    """True if *ident* names a variable or parameter of an enclosing function.

    Scopes are searched outward up to the enclosing top-level function or
    method, through any function literals in between.  Only declarations
    that start before *ident* are considered.
    """
    name = node_text(ident)
    current = ident
    while current.parent is not None:
        scope = current.parent
        for child in scope.children:
            if child.start_byte >= ident.start_byte:
                break
            if name in _bound_names(child):
                return True
        if scope.type == "type_switch_statement" and name in _identifiers(scope.child_by_field_name("alias")):
            return True
        if scope.type in ("function_declaration", "method_declaration"):
            return False
        current = scope
    return False


def is_recover_call(ts_node: Any) -> bool:
    if ts_node is None or ts_node.type != "call_expression":
        return False
    func = unwrap_parens(ts_node.child_by_field_name("function"))
    return func is not None and func.type == "identifier" and node_text(func) == "recover"
