"""Tests for the tree-sitter Go parser and tree helpers."""

from pathlib import Path

from recovercheck.parser import (
    GoParser,
    first_expression,
    is_locally_bound,
    is_recover_call,
    node_text,
    unwrap_parens,
    walk_all,
    walk_scope,
)


def test_parse_source_records_package(go_parser: GoParser):
    unit = go_parser.parse_source(b"package worker\n\nfunc Run() {}\n", "worker.go")
    assert unit.package == "worker"
    assert unit.path == "worker.go"
    assert unit.root.type == "source_file"


def test_parse_empty_source(go_parser: GoParser):
    unit = go_parser.parse_source(b"", "empty.go")
    assert unit.package == ""
    assert list(walk_all(unit.root)) == []


def test_parse_file_missing_returns_none(go_parser: GoParser, temp_dir: Path):
    assert go_parser.parse_file(temp_dir / "missing.go") is None


def test_parse_file_reads_from_disk(go_parser: GoParser, temp_dir: Path):
    path = temp_dir / "main.go"
    path.write_text("package main\n\nfunc main() {}\n")
    unit = go_parser.parse_file(path)
    assert unit is not None
    assert unit.package == "main"
    assert unit.path == str(path)


def test_parse_tolerates_syntax_errors(go_parser: GoParser):
    unit = go_parser.parse_source(b"package main\n\nfunc broken( {\n\nfunc ok() {}\n", "bad.go")
    assert unit.root.has_error


def test_is_test_file(go_parser: GoParser):
    assert go_parser.parse_source(b"package x", "x_test.go").is_test_file
    assert not go_parser.parse_source(b"package x", "x.go").is_test_file


def test_position_is_one_based(go_parser: GoParser):
    unit = go_parser.parse_source(b"package main\n\nfunc main() {\n\tgo f()\n}\n", "main.go")
    go_stmt = next(n for n in walk_all(unit.root) if n.type == "go_statement")
    position = unit.position_of(go_stmt)
    assert (position.line, position.column) == (4, 2)
    assert str(position) == "main.go:4:2"


def test_unwrap_parens_and_recover_detection(go_parser: GoParser):
    unit = go_parser.parse_source(b"package main\n\nfunc main() {\n\tdefer (recover())\n}\n")
    defer = next(n for n in walk_all(unit.root) if n.type == "defer_statement")
    call = unwrap_parens(first_expression(defer))
    assert call.type == "call_expression"
    assert is_recover_call(call)
    assert node_text(call) == "recover()"


def test_walk_scope_skips_nested_functions(go_parser: GoParser):
    source = b"""package main

func main() {
\tdefer cleanup()
\tfunc() {
\t\tdefer inner()
\t}()
}
"""
    unit = go_parser.parse_source(source)
    body = next(n for n in walk_all(unit.root) if n.type == "function_declaration").child_by_field_name("body")
    defers = [node_text(n) for n in walk_scope(body) if n.type == "defer_statement"]
    assert defers == ["defer cleanup()"]
    all_defers = [n for n in walk_all(body) if n.type == "defer_statement"]
    assert len(all_defers) == 2


def _call_targets(go_parser: GoParser, source: str):
    unit = go_parser.parse_source(source.encode("utf-8"))
    return [
        ts_node.child_by_field_name("function")
        for ts_node in walk_all(unit.root)
        if ts_node.type == "call_expression"
    ]


def test_is_locally_bound_variables_and_parameters(go_parser: GoParser):
    source = """package main

func worker() {}

func run(task func()) {
    go worker()
    go task()
    worker := func() {}
    go worker()
    for _, job := range jobs {
        go job()
    }
    var later = func() {}
    go func(cb func()) {
        cb()
        later()
    }(later)
}
"""
    targets = [t for t in _call_targets(go_parser, source) if t.type == "identifier"]
    bound = {(node_text(t), t.start_point[0] + 1): is_locally_bound(t) for t in targets}
    assert bound[("worker", 6)] is False
    assert bound[("task", 7)] is True
    assert bound[("worker", 9)] is True
    assert bound[("job", 11)] is True
    assert bound[("cb", 15)] is True
    assert bound[("later", 16)] is True


def test_is_locally_bound_stops_at_enclosing_function(go_parser: GoParser):
    source = """package main

func a() {
    handler := func() {}
    handler()
}

func b() {
    handler()
}
"""
    targets = _call_targets(go_parser, source)
    assert [is_locally_bound(t) for t in targets] == [True, False]
