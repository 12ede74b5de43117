#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import threading

import pytest

from et_errortypes import ErrorType
from et_facts import FactStore, transitive_imports
from et_internal_error import InternalAnalyzerError, MissingFactError
from et_symbols import Package, TypeName as TypeObject


def _type(pkg: Package, name: str) -> TypeObject:
    return TypeObject(name, pkg)


def test_export_then_import_after_completion():
    a = Package("example.com/a", "a")
    e = _type(a, "E")
    store = FactStore()

    store.export_fact(a.path, e, ErrorType.POINTER)
    store.mark_complete(a.path)

    assert store.is_complete(a.path)
    assert store.import_fact(e) is ErrorType.POINTER


def test_undecided_type_of_completed_package_has_no_fact():
    a = Package("example.com/a", "a")
    store = FactStore()
    store.mark_complete(a.path)

    assert store.import_fact(_type(a, "Unknown")) is None


def test_import_before_completion_is_missing_fact():
    a = Package("example.com/a", "a")
    e = _type(a, "E")
    store = FactStore()
    store.export_fact(a.path, e, ErrorType.VALUE)

    with pytest.raises(MissingFactError) as excinfo:
        store.import_fact(e)

    assert excinfo.value.package == "example.com/a"
    assert excinfo.value.type_name == "example.com/a.E"
    assert "[ICE-0100]" in excinfo.value.format()


def test_export_after_completion_is_internal_error():
    a = Package("example.com/a", "a")
    store = FactStore()
    store.mark_complete(a.path)

    with pytest.raises(InternalAnalyzerError) as excinfo:
        store.export_fact(a.path, _type(a, "E"), ErrorType.POINTER)

    assert "[ICE-0110]" in excinfo.value.message


def test_exporting_twice_is_internal_error():
    a = Package("example.com/a", "a")
    e = _type(a, "E")
    store = FactStore()
    store.export_fact(a.path, e, ErrorType.POINTER)

    with pytest.raises(InternalAnalyzerError) as excinfo:
        store.export_fact(a.path, e, ErrorType.VALUE)

    assert "[ICE-0120]" in excinfo.value.message


def test_facts_are_keyed_by_object_not_name():
    a = Package("example.com/a", "a")
    first, second = _type(a, "E"), _type(a, "E")
    store = FactStore()
    store.export_fact(a.path, first, ErrorType.POINTER)
    store.mark_complete(a.path)

    assert store.import_fact(first) is ErrorType.POINTER
    assert store.import_fact(second) is None


def test_facts_of_merges_completed_packages():
    a = Package("example.com/a", "a")
    b = Package("example.com/b", "b")
    ea, eb = _type(a, "E"), _type(b, "E")
    store = FactStore()
    store.export_fact(a.path, ea, ErrorType.POINTER)
    store.export_fact(b.path, eb, ErrorType.VALUE)
    store.mark_complete(a.path)

    assert store.facts_of([a.path]) == {ea: ErrorType.POINTER}

    with pytest.raises(MissingFactError):
        store.facts_of([a.path, b.path])

    store.mark_complete(b.path)
    assert store.facts_of([a.path, b.path]) == {ea: ErrorType.POINTER, eb: ErrorType.VALUE}


def test_concurrent_exports_from_distinct_packages():
    store = FactStore()
    packages = [Package(f"example.com/p{i}", f"p{i}") for i in range(8)]
    keys = {pkg.path: [_type(pkg, f"E{n}") for n in range(50)] for pkg in packages}

    def export(pkg: Package) -> None:
        for key in keys[pkg.path]:
            store.export_fact(pkg.path, key, ErrorType.POINTER)
        store.mark_complete(pkg.path)

    threads = [threading.Thread(target=export, args=(pkg,)) for pkg in packages]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store.facts_of(pkg.path for pkg in packages)) == 8 * 50


def test_transitive_imports_skips_fake_packages():
    c = Package("example.com/c", "c")
    b = Package("example.com/b", "b", imports=[c])
    missing = Package("example.com/missing", "missing", fake=True)
    a = Package("example.com/a", "a", imports=[b, missing, c])

    assert transitive_imports(a) == {"example.com/b", "example.com/c"}
    assert transitive_imports(c) == set()
