"""Symbol resolution across Go package boundaries.

Maps the qualifier of a ``pkg.Func`` reference to an import path, the import
path to a package directory, and the function name to the file and line
that declare it.  Declarations are located with a line scan so that the
cross-module loader only has to parse the one file it needs.
"""

from __future__ import annotations

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .parser import node_text

logger = logging.getLogger(__name__)

_MODULE_RE = re.compile(r"^\s*module\s+(\S+)", re.MULTILINE)
_PACKAGE_RE = re.compile(r"^\s*package\s+(\w+)", re.MULTILINE)
_VERSION_SUFFIX_RE = re.compile(r"^v\d+$")


@dataclass(frozen=True)
class Declaration:
    import_path: str
    file: str
    line: int
    name: str


class SymbolService(ABC):
    """Answers the questions the resolver asks about names in one unit."""

    @abstractmethod
    def is_import(self, name: str) -> bool:
        """Return True if *name* is a package qualifier in the unit."""
        ...

    @abstractmethod
    def qualified_key(self, qualifier: str, symbol: str) -> str:
        """Return the memoization key for ``qualifier.symbol``."""
        ...

    @abstractmethod
    def lookup(self, qualifier: str, symbol: str) -> Optional[Declaration]:
        """Locate the declaration of ``qualifier.symbol``."""
        ...


class NullSymbolService(SymbolService):
    """Symbol service for units with no resolvable imports."""

    def is_import(self, name: str) -> bool:
        return False

    def qualified_key(self, qualifier: str, symbol: str) -> str:
        return f"{qualifier}.{symbol}"

    def lookup(self, qualifier: str, symbol: str) -> Optional[Declaration]:
        return None


# ===================================================================
# Import tables
# ===================================================================

def default_import_name(import_path: str) -> str:
    """Guess the package name of *import_path* from its last element.

    Handles major-version suffixes (``example.com/lib/v2`` -> ``lib``) and
    gopkg.in style versions (``gopkg.in/yaml.v3`` -> ``yaml``).
    """
    parts = [p for p in import_path.split("/") if p]
    if not parts:
        return ""
    last = parts[-1]
    if _VERSION_SUFFIX_RE.match(last) and len(parts) > 1:
        last = parts[-2]
    if re.search(r"\.v\d+$", last):
        last = last.rsplit(".", 1)[0]
    return last.replace("-", "_")


def read_imports(root: Any) -> List[Tuple[str, str]]:
    """Return ``(explicit name, import path)`` pairs of a ``source_file``.

    The name is empty for imports without an alias.
    """
    imports: List[Tuple[str, str]] = []
    for decl in root.named_children:
        if decl.type != "import_declaration":
            continue
        specs = []
        for child in decl.named_children:
            if child.type == "import_spec":
                specs.append(child)
            elif child.type == "import_spec_list":
                specs.extend(s for s in child.named_children if s.type == "import_spec")
        for spec in specs:
            path_node = spec.child_by_field_name("path")
            if path_node is None:
                continue
            path = node_text(path_node).strip("\"`")
            name_node = spec.child_by_field_name("name")
            imports.append((node_text(name_node) if name_node is not None else "", path))
    return imports


# ===================================================================
# Workspace: import path -> directory -> declaration
# ===================================================================

class GoWorkspace:
    """Locates packages and function declarations on disk.

    Package directories are searched under the enclosing ``go.mod`` module,
    then GOPATH-style ``src`` roots, then ``vendor``.  All lookups are
    cached; a workspace may be shared by every unit of one run.
    """

    def __init__(self, root: Path, extra_src_roots: Optional[List[str]] = None) -> None:
        self.root = root.resolve()
        self.src_roots: List[Path] = []
        for candidate in (self.root / "src", self.root / "testdata" / "src"):
            if candidate.is_dir():
                self.src_roots.append(candidate)
        for extra in extra_src_roots or []:
            path = Path(extra)
            if not path.is_absolute():
                path = self.root / path
            if path.is_dir():
                self.src_roots.append(path.resolve())
        gopath = os.environ.get("GOPATH")
        if gopath:
            for entry in gopath.split(os.pathsep):
                src = Path(entry) / "src"
                if src.is_dir():
                    self.src_roots.append(src)
        self._modules: Dict[Path, Optional[Tuple[Path, str]]] = {}
        self._packages: Dict[Tuple[str, Path], Optional[Path]] = {}
        self._names: Dict[Path, str] = {}
        self._declarations: Dict[Tuple[Path, str], Optional[Tuple[str, int]]] = {}

    # -- modules ----------------------------------------------------------

    def module_of(self, directory: Path) -> Optional[Tuple[Path, str]]:
        """Return ``(module root, module path)`` for *directory*."""
        directory = directory.resolve()
        if directory in self._modules:
            return self._modules[directory]
        found: Optional[Tuple[Path, str]] = None
        for candidate in [directory, *directory.parents]:
            go_mod = candidate / "go.mod"
            if go_mod.is_file():
                try:
                    match = _MODULE_RE.search(go_mod.read_text(encoding="utf-8", errors="ignore"))
                except OSError as exc:
                    logger.warning("Failed to read %s: %s", go_mod, exc)
                    match = None
                if match:
                    found = (candidate, match.group(1))
                break
        self._modules[directory] = found
        return found

    def package_dir(self, import_path: str, from_dir: Path) -> Optional[Path]:
        key = (import_path, from_dir.resolve())
        if key in self._packages:
            return self._packages[key]
        result = self._find_package_dir(import_path, from_dir)
        logger.debug("Import %s from %s resolved to %s", import_path, from_dir, result)
        self._packages[key] = result
        return result

    def _find_package_dir(self, import_path: str, from_dir: Path) -> Optional[Path]:
        module = self.module_of(from_dir)
        if module is not None:
            mod_root, mod_path = module
            if import_path == mod_path:
                return mod_root
            if import_path.startswith(mod_path + "/"):
                candidate = mod_root / import_path[len(mod_path) + 1:]
                if candidate.is_dir():
                    return candidate
        for src in self.src_roots:
            candidate = src / import_path
            if candidate.is_dir():
                return candidate
        if module is not None:
            candidate = module[0] / "vendor" / import_path
            if candidate.is_dir():
                return candidate
        return None

    # -- package contents -------------------------------------------------

    @staticmethod
    def go_files(pkg_dir: Path) -> List[Path]:
        """Non-test files first, then test files, each in name order."""
        files = sorted(p for p in pkg_dir.glob("*.go") if p.is_file())
        return [p for p in files if not p.name.endswith("_test.go")] + [
            p for p in files if p.name.endswith("_test.go")
        ]

    def package_name(self, pkg_dir: Path) -> str:
        if pkg_dir in self._names:
            return self._names[pkg_dir]
        name = ""
        for go_file in self.go_files(pkg_dir):
            if go_file.name.endswith("_test.go"):
                continue
            try:
                match = _PACKAGE_RE.search(go_file.read_text(encoding="utf-8", errors="ignore"))
            except OSError:
                continue
            if match:
                name = match.group(1)
                break
        self._names[pkg_dir] = name
        return name

    def find_declaration(self, pkg_dir: Path, symbol: str) -> Optional[Tuple[str, int]]:
        """Return ``(file, line)`` of the first ``func symbol`` in *pkg_dir*."""
        key = (pkg_dir, symbol)
        if key in self._declarations:
            return self._declarations[key]
        pattern = re.compile(rf"^func\s+{re.escape(symbol)}\s*[\[(]")
        found: Optional[Tuple[str, int]] = None
        for go_file in self.go_files(pkg_dir):
            try:
                lines = go_file.read_text(encoding="utf-8", errors="ignore").splitlines()
            except OSError as exc:
                logger.warning("Failed to read %s: %s", go_file, exc)
                continue
            for lineno, line in enumerate(lines, start=1):
                if pattern.match(line):
                    found = (str(go_file), lineno)
                    break
            if found:
                break
        self._declarations[key] = found
        return found


class GoSymbolService(SymbolService):
    """Symbol service for one compilation unit inside a :class:`GoWorkspace`."""

    def __init__(self, workspace: GoWorkspace, unit_dir: Path, root: Any) -> None:
        self.workspace = workspace
        self.unit_dir = unit_dir
        self.imports: Dict[str, str] = {}
        for explicit, path in read_imports(root):
            if explicit in ("_", "."):
                continue
            name = explicit or self._package_name_for(path)
            if name:
                self.imports[name] = path

    def _package_name_for(self, import_path: str) -> str:
        pkg_dir = self.workspace.package_dir(import_path, self.unit_dir)
        if pkg_dir is not None:
            name = self.workspace.package_name(pkg_dir)
            if name:
                return name
        return default_import_name(import_path)

    def is_import(self, name: str) -> bool:
        return name in self.imports

    def qualified_key(self, qualifier: str, symbol: str) -> str:
        return f"{self.imports.get(qualifier, qualifier)}.{symbol}"

    def lookup(self, qualifier: str, symbol: str) -> Optional[Declaration]:
        import_path = self.imports.get(qualifier)
        if import_path is None:
            return None
        pkg_dir = self.workspace.package_dir(import_path, self.unit_dir)
        if pkg_dir is None:
            logger.debug("Package %s not found from %s", import_path, self.unit_dir)
            return None
        located = self.workspace.find_declaration(pkg_dir, symbol)
        if located is None:
            return None
        return Declaration(import_path=import_path, file=located[0], line=located[1], name=symbol)
