#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from et_ast import File
from et_checker import TypesInfo
from et_diagnostics import Diagnostic
from et_symbols import Package


@dataclass(eq=False)
class PackageUnit:
    """
    One package as the analysis sees it.

    - path: import path (e.g. 'example.com/app/store')
    - files: parsed sources in file name order, test files last
    - imports: import paths used by any of the files, in first-use order
    - types / info: filled in by type checking
    """
    path: str
    name: str
    files: List[File]
    imports: List[str] = field(default_factory=list)
    directory: Optional[str] = None
    is_stub: bool = False
    types: Optional[Package] = None
    info: Optional[TypesInfo] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def has_test_files(self) -> bool:
        return any(f.is_test_file for f in self.files)

    @property
    def usable(self) -> bool:
        """Loaded and free of front-end errors."""
        return not any(d.kind == "error" and d.is_front_end for d in self.diagnostics)


@dataclass
class CompilationUnit:
    """
    A closed set of packages reachable from the requested roots.

    - roots: packages named on the command line, in request order
    - packages: import path -> PackageUnit for every loaded package,
      including stubs
    """
    roots: List[PackageUnit]
    packages: Dict[str, PackageUnit]

    def __contains__(self, path: str) -> bool:
        return path in self.packages

    def topological_order(self) -> List[PackageUnit]:
        """Packages ordered so that every package follows its imports."""
        order: List[PackageUnit] = []
        visited = set()

        def visit(unit: PackageUnit) -> None:
            if unit.path in visited:
                return
            visited.add(unit.path)
            for imp in unit.imports:
                dep = self.packages.get(imp)
                if dep is not None:
                    visit(dep)
            order.append(unit)

        for path in sorted(self.packages):
            visit(self.packages[path])
        return order

    def waves(self) -> List[List[PackageUnit]]:
        """Group packages by dependency depth; packages of one wave are independent."""
        depth: Dict[str, int] = {}
        for unit in self.topological_order():
            deps = [depth[imp] for imp in unit.imports if imp in depth]
            depth[unit.path] = 1 + max(deps) if deps else 0
        result: List[List[PackageUnit]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
        for unit in self.topological_order():
            result[depth[unit.path]].append(unit)
        return result
