#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import pytest

from et_paths import SourceSearchPaths


def _touch(root, rel):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("package x\n")


def test_expand_all_packages_skips_special_directories(tmp_path):
    _touch(tmp_path, "example.com/a/a.go")
    _touch(tmp_path, "example.com/a/b/b.go")
    _touch(tmp_path, "example.com/a/testdata/t.go")
    _touch(tmp_path, "example.com/a/vendor/v/v.go")
    _touch(tmp_path, "example.com/a/.hidden/h.go")
    _touch(tmp_path, "example.com/a/_skip/s.go")
    _touch(tmp_path, "example.com/a/docs/README.md")

    paths = SourceSearchPaths()
    paths.add_project_root(tmp_path)

    assert paths.expand_pattern("./...") == ["example.com/a", "example.com/a/b"]
    assert paths.expand_pattern("example.com/a/b/...") == ["example.com/a/b"]
    assert paths.expand_pattern("example.com/nothing/...") == []


def test_expand_plain_pattern_is_one_package(tmp_path):
    paths = SourceSearchPaths()
    paths.add_project_root(tmp_path)

    assert paths.expand_pattern("./example.com/a/") == ["example.com/a"]
    assert paths.expand_pattern("example.com/missing") == ["example.com/missing"]


def test_expand_merges_project_roots(tmp_path):
    first, second = tmp_path / "one", tmp_path / "two"
    _touch(first, "example.com/a/a.go")
    _touch(second, "example.com/a/a.go")
    _touch(second, "example.com/b/b.go")

    paths = SourceSearchPaths()
    paths.add_project_root(first)
    paths.add_project_root(second)

    assert paths.expand_pattern("...") == ["example.com/a", "example.com/b"]


def test_resolve_prefers_system_roots(tmp_path):
    sys_root, proj_root = tmp_path / "sys", tmp_path / "proj"
    _touch(sys_root, "example.com/lib/lib.go")
    _touch(proj_root, "example.com/lib/lib.go")
    _touch(proj_root, "example.com/app/app.go")

    paths = SourceSearchPaths()
    paths.add_system_root(sys_root)
    paths.add_project_root(proj_root)

    assert paths.resolve("example.com/lib") == sys_root / "example.com" / "lib"
    assert paths.resolve("example.com/app") == proj_root / "example.com" / "app"


@pytest.mark.parametrize("import_path", ["", "/abs/path", "example.com/../escape", "example.com/none"])
def test_resolve_failures(tmp_path, import_path):
    paths = SourceSearchPaths()
    paths.add_project_root(tmp_path)

    with pytest.raises(FileNotFoundError):
        paths.resolve(import_path)


def test_library_stubs():
    assert SourceSearchPaths.has_stub("errors")
    assert SourceSearchPaths.has_stub("io/fs")
    assert not SourceSearchPaths.has_stub("example.com/a")
