#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from et_stdlib import stub_source

_SKIPPED_DIRS = ("testdata", "vendor")


def _has_sources(directory: Path) -> bool:
    if not directory.is_dir():
        return False
    return any(p.suffix == ".go" and p.is_file() for p in directory.iterdir())


def _skip_dir(name: str) -> bool:
    return name in _SKIPPED_DIRS or name.startswith(".") or name.startswith("_")


@dataclass
class SourceSearchPaths:
    """
    Search configuration for packages.

    - system_roots: for standard library / vendored packages
    - project_roots: for the packages being analyzed

    Resolution rule: system_roots are searched first, then project_roots,
    then the built-in library stubs.
    """
    system_roots: List[Path] = field(default_factory=list)
    project_roots: List[Path] = field(default_factory=list)

    def add_system_root(self, root: str | Path) -> None:
        self.system_roots.append(Path(root))

    def add_project_root(self, root: str | Path) -> None:
        self.project_roots.append(Path(root))

    def package_relpath(self, import_path: str) -> Path:
        """
        Convert an import path like 'example.com/app/store' to a relative
        directory.
        """
        return Path(*import_path.split("/"))

    def resolve(self, import_path: str) -> Path:
        """
        Find the first directory holding sources for `import_path`.

        Search order:
          1. system_roots
          2. project_roots

        Raises FileNotFoundError if not found; callers fall back to
        `has_stub`.
        """
        if not import_path or import_path.startswith("/") or ".." in import_path.split("/"):
            raise FileNotFoundError(f"Invalid import path '{import_path}'")
        rel = self.package_relpath(import_path)

        # 1. system roots
        for root in self.system_roots:
            candidate = root / rel
            if _has_sources(candidate):
                return candidate

        # 2. project roots
        for root in self.project_roots:
            candidate = root / rel
            if _has_sources(candidate):
                return candidate

        raise FileNotFoundError(
            f"Package '{import_path}' not found in system_roots or project_roots"
        )

    @staticmethod
    def has_stub(import_path: str) -> bool:
        return stub_source(import_path) is not None

    def expand_pattern(self, pattern: str) -> List[str]:
        """
        Expand a command line pattern to import paths.

        - 'a/b' or './a/b': the package a/b
        - 'a/b/...': a/b and every package below it, in every project root
        - './...': every package of every project root

        Directories named testdata or vendor and hidden directories are
        skipped. A pattern with a wildcard matching nothing expands to an
        empty list.
        """
        pattern = pattern.replace(os.sep, "/")
        while pattern.startswith("./"):
            pattern = pattern[2:]
        if pattern in ("...", "/..."):
            prefix = ""
        elif pattern.endswith("/..."):
            prefix = pattern[: -len("/...")]
        else:
            return [pattern.rstrip("/")]

        found: List[str] = []
        for root in self.project_roots:
            base = root / self.package_relpath(prefix) if prefix else root
            if not base.is_dir():
                continue
            for dirpath, dirnames, _ in os.walk(base):
                dirnames[:] = sorted(d for d in dirnames if not _skip_dir(d))
                directory = Path(dirpath)
                if not _has_sources(directory):
                    continue
                rel = directory.relative_to(root).as_posix()
                if rel == "." or rel in found:
                    continue
                found.append(rel)
        return sorted(found)
