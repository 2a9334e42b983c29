"""Recovery resolver: decides whether a launched callable can let a panic escape.

A goroutine is safe when the function it runs registers a ``defer`` whose
deferred call recovers.  ``recover`` only stops a panic when it runs inside
a deferred call, so a ``recover()`` anywhere else in the launched body does
not count.

Two questions are asked of callables and memoized separately:

* guard: does running this function defer a recovering call?
* handler: does this callable recover when it is itself the deferred call?
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from .collector import classify_call
from .models import CallableRef, CallableShape, FunctionDefinition
from .parser import first_expression, is_recover_call, unwrap_parens, walk_scope
from .symbols import SymbolService
from .table import RecoveryKey, RecoveryTable, Role

if TYPE_CHECKING:
    from .loader import CrossModuleLoader

logger = logging.getLogger(__name__)


class RecoveryResolver:
    """Classifies callables of one package as panic-safe or not.

    Local function definitions are registered with :meth:`declare` or
    :meth:`seed`; qualified references are handed to the cross-module
    loader through the shared :class:`RecoveryTable`.
    """

    def __init__(
        self,
        table: RecoveryTable,
        symbols: SymbolService,
        loader: Optional["CrossModuleLoader"] = None,
        definitions: Optional[Dict[str, FunctionDefinition]] = None,
        peers: Optional[Dict[str, "RecoveryResolver"]] = None,
    ) -> None:
        self.table = table
        self.symbols = symbols
        self.loader = loader
        # Shared by the resolvers of every file in one package.
        self.definitions: Dict[str, FunctionDefinition] = definitions if definitions is not None else {}
        self.peers: Dict[str, RecoveryResolver] = peers if peers is not None else {}

    # ------------------------------------------------------------------
    # Local definitions
    # ------------------------------------------------------------------

    def declare(self, functions: Iterable[FunctionDefinition]) -> None:
        """Register local definitions without analyzing them.

        Plain functions take precedence over methods of the same name,
        otherwise the first definition wins.
        """
        methods = []
        for fn in functions:
            if fn.receiver:
                methods.append(fn)
                continue
            self.definitions.setdefault(fn.name, fn)
        for fn in methods:
            self.definitions.setdefault(fn.name, fn)
        for name in self.definitions:
            self.table.declare_local(name)

    def seed(self, functions: Iterable[FunctionDefinition]) -> None:
        """Declare *functions* and eagerly compute their guard results."""
        functions = list(functions)
        self.declare(functions)
        for fn in functions:
            if self.definitions.get(fn.name) is not fn:
                continue
            owner = self._owner(fn)
            self.table.lookup_or_compute(
                RecoveryKey(Role.GUARD, fn.name, local=True),
                lambda fn=fn, owner=owner: owner.body_guarded(fn.body),
            )

    def _owner(self, fn: FunctionDefinition) -> "RecoveryResolver":
        """The resolver for the file that defines *fn*, whose imports apply."""
        return self.peers.get(fn.unit_path, self)

    # ------------------------------------------------------------------
    # Launches
    # ------------------------------------------------------------------

    def is_safe_launch(self, ref: CallableRef) -> bool:
        """Return True if a panic in the launched callable is always recovered."""
        if ref.shape is CallableShape.CLOSURE:
            return self.body_guarded(ref.node.child_by_field_name("body"))
        if ref.shape is CallableShape.LOCAL:
            return bool(self.table.lookup_local(ref.name, Role.GUARD))
        if ref.shape is CallableShape.QUALIFIED:
            return self.resolve_qualified(ref, Role.GUARD)
        return False

    def resolve_qualified(self, ref: CallableRef, role: Role) -> bool:
        key = RecoveryKey(role, self.symbols.qualified_key(ref.qualifier, ref.name))
        return self.table.lookup_or_compute(key, lambda: self._load(ref, role))

    def _load(self, ref: CallableRef, role: Role) -> bool:
        if self.loader is None:
            return False
        return self.loader.resolve(self.table, self.symbols, ref.qualifier, ref.name, role)

    # ------------------------------------------------------------------
    # Guard: a recovering defer registered by the body itself
    # ------------------------------------------------------------------

    def body_guarded(self, body: Any) -> bool:
        if body is None:
            return False
        for ts_node in walk_scope(body):
            if ts_node.type == "defer_statement" and self.defer_recovers(ts_node):
                return True
        return False

    def defer_recovers(self, defer_node: Any) -> bool:
        call = unwrap_parens(first_expression(defer_node))
        if call is None or call.type != "call_expression":
            return False
        if is_recover_call(call):
            return True
        ref = classify_call(call, self.symbols)
        return ref is not None and self.handles(ref)

    # ------------------------------------------------------------------
    # Handler: recovers when it is the deferred call
    # ------------------------------------------------------------------

    def handles(self, ref: CallableRef) -> bool:
        if ref.shape is CallableShape.CLOSURE:
            return self.body_handles(ref.node.child_by_field_name("body"))
        if ref.shape is CallableShape.LOCAL:
            fn = self.definitions.get(ref.name)
            if fn is None:
                return False
            owner = self._owner(fn)
            return self.table.lookup_or_compute(
                RecoveryKey(Role.HANDLER, ref.name, local=True),
                lambda: owner.body_handles(fn.body),
            )
        if ref.shape is CallableShape.QUALIFIED:
            return self.resolve_qualified(ref, Role.HANDLER)
        return False

    def body_handles(self, body: Any) -> bool:
        """Search *body* through nested blocks and conditionals for a
        ``recover()`` call, or a call to a callable that handles panics."""
        if body is None:
            return False
        for ts_node in walk_scope(body):
            if ts_node.type != "call_expression":
                continue
            if is_recover_call(ts_node):
                return True
            ref = classify_call(ts_node, self.symbols)
            if ref is not None and ref.shape is not CallableShape.OTHER and self.handles(ref):
                return True
        return False
