"""Pytest configuration and fixtures for recovercheck tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List

import pytest

from recovercheck.analyzer import RecoverAnalyzer
from recovercheck.models import Diagnostic
from recovercheck.parser import GoParser


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    """Keep a developer's RECOVERCHECK_CONFIG or GOPATH out of the tests."""
    monkeypatch.delenv("RECOVERCHECK_CONFIG", raising=False)
    monkeypatch.delenv("GOPATH", raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def go_parser() -> GoParser:
    return GoParser()


@pytest.fixture
def goproject_path() -> Path:
    """Path to the sample Go module used by driver and CLI tests."""
    return Path(__file__).parent / "fixtures" / "goproject"


@pytest.fixture
def analyze(go_parser: GoParser) -> Callable[[str], List[Diagnostic]]:
    """Analyze one in-memory Go file and return its diagnostics."""

    def _analyze(source: str, path: str = "main.go") -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        unit = go_parser.parse_source(source.encode("utf-8"), path)
        RecoverAnalyzer(diagnostics.append).analyze_unit(unit)
        return diagnostics

    return _analyze


@pytest.fixture
def write_module(temp_dir: Path) -> Callable[[Dict[str, str]], Path]:
    """Write a Go module (``go.mod`` plus the given files) into *temp_dir*."""

    def _write(files: Dict[str, str], module: str = "example.com/m") -> Path:
        (temp_dir / "go.mod").write_text(f"module {module}\n\ngo 1.21\n")
        for rel, content in files.items():
            target = temp_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return temp_dir

    return _write


@pytest.fixture
def unsafe_closure_source() -> str:
    return '''package main

func main() {
    go func() {
        panic("boom")
    }()
}
'''


@pytest.fixture
def safe_closure_source() -> str:
    return '''package main

import "log"

func main() {
    go func() {
        defer func() {
            if r := recover(); r != nil {
                log.Println("recovered:", r)
            }
        }()
        panic("boom")
    }()
}
'''
