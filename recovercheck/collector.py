"""Syntax collector: function definitions and launch statements of one unit."""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from .models import (
    CallableRef,
    CallableShape,
    CollectedNodes,
    CompilationUnit,
    FunctionDefinition,
    LaunchKind,
    LaunchStatement,
)
from .parser import first_expression, is_locally_bound, node_text, unwrap_parens, walk_all
from .symbols import SymbolService


def _is_import(ident: Any, symbols: SymbolService) -> bool:
    return ident.type == "identifier" and symbols.is_import(node_text(ident)) and not is_locally_bound(ident)


def classify_callable(expr: Any, symbols: SymbolService) -> CallableRef:
    """Classify a callable *value* expression by its shape.

    A bare name bound by a local variable or parameter is ``OTHER`` even
    when a package-level function of the same name exists.
    """
    expr = unwrap_parens(expr)
    if expr is None:
        return CallableRef(CallableShape.OTHER)
    if expr.type == "func_literal":
        return CallableRef(CallableShape.CLOSURE, node=expr)
    if expr.type == "identifier":
        if is_locally_bound(expr):
            return CallableRef(CallableShape.OTHER, node=expr, name=node_text(expr))
        return CallableRef(CallableShape.LOCAL, node=expr, name=node_text(expr))
    if expr.type == "selector_expression":
        operand = unwrap_parens(expr.child_by_field_name("operand"))
        field = expr.child_by_field_name("field")
        if operand is not None and field is not None and _is_import(operand, symbols):
            return CallableRef(
                CallableShape.QUALIFIED,
                node=expr,
                name=node_text(field),
                qualifier=node_text(operand),
            )
    return CallableRef(CallableShape.OTHER, node=expr)


def classify_call(call: Any, symbols: SymbolService) -> Optional[CallableRef]:
    """Classify the function invoked by a call expression.

    Returns ``None`` when *call* is not a call at all.
    """
    call = unwrap_parens(call)
    if call is None or call.type != "call_expression":
        return None
    return classify_callable(call.child_by_field_name("function"), symbols)


def is_group_launch(call: Any, symbols: SymbolService) -> bool:
    """``x.Go(...)`` where ``x`` is not a package qualifier."""
    func = unwrap_parens(call.child_by_field_name("function"))
    if func is None or func.type != "selector_expression":
        return False
    if node_text(func.child_by_field_name("field")) != "Go":
        return False
    operand = unwrap_parens(func.child_by_field_name("operand"))
    return not (operand is not None and _is_import(operand, symbols))


def _is_go_operand(call: Any) -> bool:
    parent = call.parent
    while parent is not None and parent.type == "parenthesized_expression":
        parent = parent.parent
    return parent is not None and parent.type == "go_statement"


def _is_bare_go(ts_node: Any) -> bool:
    # A ``go`` keyword with nothing after it parses as an ERROR node.
    return ts_node.type == "ERROR" and bool(ts_node.children) and ts_node.children[0].type == "go"


def _call_arguments(call: Any) -> List[Any]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [a for a in args.named_children if a.type != "comment"]


def collect(
    unit: CompilationUnit,
    symbols: SymbolService,
    include_group_launches: bool = True,
) -> Tuple[List[FunctionDefinition], List[LaunchStatement]]:
    """Extract function definitions and launch statements from *unit*.

    One pass in source order.  Launches nested inside closures are found as
    well; an empty unit yields two empty lists.  ``go g.Go(fn)`` is a single
    ``go`` launch, not an additional group launch.
    """
    collected = CollectedNodes()

    for ts_node in walk_all(unit.root):
        if ts_node.type in ("function_declaration", "method_declaration"):
            name_node = ts_node.child_by_field_name("name")
            body = ts_node.child_by_field_name("body")
            if name_node is None or body is None:
                continue
            receiver = ts_node.child_by_field_name("receiver")
            collected.functions.append(FunctionDefinition(
                name=node_text(name_node),
                body=body,
                unit_path=unit.path,
                line=ts_node.start_point[0] + 1,
                receiver=node_text(receiver) if receiver is not None else "",
            ))
        elif ts_node.type == "go_statement":
            expr = first_expression(ts_node)
            callee = None
            if expr is not None and not expr.is_missing and expr.type != "ERROR":
                callee = classify_call(expr, symbols)
            collected.launches.append(LaunchStatement(
                position=unit.position_of(ts_node),
                kind=LaunchKind.GO,
                callee=callee,
            ))
        elif _is_bare_go(ts_node):
            collected.launches.append(LaunchStatement(
                position=unit.position_of(ts_node),
                kind=LaunchKind.GO,
                callee=None,
            ))
        elif (
            include_group_launches
            and ts_node.type == "call_expression"
            and is_group_launch(ts_node, symbols)
            and not _is_go_operand(ts_node)
        ):
            args = _call_arguments(ts_node)
            if not args:
                continue
            collected.launches.append(LaunchStatement(
                position=unit.position_of(ts_node),
                kind=LaunchKind.GROUP,
                callee=classify_callable(args[0], symbols),
            ))

    return collected.as_tuple()
