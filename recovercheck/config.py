"""Settings and fixed configuration for recovercheck."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Set

CONFIG_ENV_VAR = "RECOVERCHECK_CONFIG"
CONFIG_FILE_NAMES = ("recovercheck.toml", ".recovercheck.toml")
CONFIG_SECTION = "recovercheck"

GO_EXTENSION = ".go"
TEST_FILE_SUFFIX = "_test.go"

SKIP_DIRS: Set[str] = {
    ".git", ".hg", ".svn", "vendor", "node_modules", ".idea", ".vscode",
    "__pycache__", ".venv", "venv",
}


@dataclass
class Settings:
    skip_test_files: bool = False
    check_errgroup: bool = True
    jobs: int = 1
    extra_src_roots: List[str] = field(default_factory=list)

    def merged(
        self,
        skip_test_files: Optional[bool] = None,
        check_errgroup: Optional[bool] = None,
        jobs: Optional[int] = None,
    ) -> "Settings":
        """Return a copy with every non-``None`` override applied."""
        return Settings(
            skip_test_files=self.skip_test_files if skip_test_files is None else skip_test_files,
            check_errgroup=self.check_errgroup if check_errgroup is None else check_errgroup,
            jobs=self.jobs if jobs is None else jobs,
            extra_src_roots=list(self.extra_src_roots),
        )


def config_file_from_env() -> Optional[str]:
    return os.environ.get(CONFIG_ENV_VAR) or None
