"""Architectural tests for the checklist service.

All tests are static/AST-based to avoid runtime side effects. They pin the
layering the service relies on: routes carry no SQL, logic does not depend on
the web framework, and the database engine is injected rather than held in
module-level state.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "checklist_service"
ROUTES_DIR = PKG_DIR / "routes"
LOGIC_DIR = PKG_DIR / "logic"
MODELS_DIR = PKG_DIR / "models"
SCHEMA_DIR = PKG_DIR / "db" / "schema"


def py_files_under(*roots: Path) -> list[Path]:
    files: list[Path] = []
    for root in roots:
        if not root.exists():
            continue
        for p in root.rglob("*.py"):
            if "__pycache__" in p.parts:
                continue
            files.append(p)
    return files


@dataclass
class ParsedModule:
    path: Path
    tree: ast.AST


def parse_module_safe(path: Path) -> Optional[ParsedModule]:
    try:
        code = path.read_text(encoding="utf-8")
    except OSError:  # pragma: no cover - filesystem error should fail test later
        return None
    try:
        return ParsedModule(path=path, tree=ast.parse(code, filename=str(path)))
    except SyntaxError:
        return None


def parse_many(files: Iterable[Path]) -> list[ParsedModule]:
    result: list[ParsedModule] = []
    for f in files:
        pm = parse_module_safe(f)
        if pm is not None:
            result.append(pm)
    return result


def imported_modules(pm: ParsedModule) -> set[str]:
    names: set[str] = set()
    for node in ast.walk(pm.tree):
        if isinstance(node, ast.Import):
            names.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.add(node.module)
    return names


def module_contains_sql_strings(pm: ParsedModule) -> bool:
    """Detect inline SQL in runtime string literals, ignoring docstrings."""
    docstring_ids: set[int] = set()
    for container in ast.walk(pm.tree):
        if isinstance(container, (ast.Module, ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            body = getattr(container, "body", [])
            if body:
                first = body[0]
                if isinstance(first, ast.Expr) and isinstance(first.value, ast.Constant) and isinstance(first.value.value, str):
                    docstring_ids.add(id(first.value))

    for node in ast.walk(pm.tree):
        if isinstance(node, ast.Constant) and isinstance(node.value, str):
            if id(node) in docstring_ids:
                continue
            s = node.value.upper()
            if "INSERT INTO " in s or "DELETE FROM " in s or "SELECT " in s:
                return True
            if "UPDATE " in s and " SET " in s:
                return True
    return False


def test_package_parses() -> None:
    files = py_files_under(PKG_DIR)
    assert files, "checklist_service package not found"
    unparsable = [str(f) for f in files if parse_module_safe(f) is None]
    assert unparsable == []


def test_routes_contain_no_inline_sql() -> None:
    offenders = [str(pm.path) for pm in parse_many(py_files_under(ROUTES_DIR)) if module_contains_sql_strings(pm)]
    assert offenders == []


def test_checklist_inserts_live_in_the_repository_module() -> None:
    pm = parse_module_safe(LOGIC_DIR / "repository_checklists.py")
    assert pm is not None
    assert module_contains_sql_strings(pm)


@pytest.mark.parametrize("layer", [LOGIC_DIR, MODELS_DIR])
def test_logic_and_models_do_not_import_web_framework(layer: Path) -> None:
    offenders = []
    for pm in parse_many(py_files_under(layer)):
        for name in imported_modules(pm):
            if name.split(".")[0] in {"fastapi", "starlette", "uvicorn"}:
                offenders.append(f"{pm.path.name}:{name}")
    assert offenders == []


def test_no_module_level_engine_or_global_statements() -> None:
    offenders: list[str] = []
    for pm in parse_many(py_files_under(PKG_DIR)):
        for node in ast.walk(pm.tree):
            if isinstance(node, ast.Global):
                offenders.append(f"{pm.path.name}: global {', '.join(node.names)}")
        for node in getattr(pm.tree, "body", []):
            # A module-level call to create_engine/create_db_engine is a shared handle
            if isinstance(node, (ast.Assign, ast.AnnAssign)) and isinstance(node.value, ast.Call):
                func = node.value.func
                name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", "")
                if name in {"create_engine", "create_db_engine"}:
                    offenders.append(f"{pm.path.name}: module-level {name}()")
    assert offenders == []


def test_writer_takes_engine_through_constructor() -> None:
    pm = parse_module_safe(LOGIC_DIR / "repository_checklists.py")
    assert pm is not None
    writer = next(
        n for n in ast.walk(pm.tree) if isinstance(n, ast.ClassDef) and n.name == "ChecklistWriter"
    )
    init = next(n for n in writer.body if isinstance(n, ast.FunctionDef) and n.name == "__init__")
    assert [a.arg for a in init.args.args][:2] == ["self", "engine"]


def test_submission_route_is_post_only() -> None:
    pm = parse_module_safe(ROUTES_DIR / "checklists.py")
    assert pm is not None
    methods: dict[str, set[str]] = {}
    for node in ast.walk(pm.tree):
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            continue
        for deco in node.decorator_list:
            if isinstance(deco, ast.Call) and isinstance(deco.func, ast.Attribute):
                if deco.func.attr == "post":
                    methods.setdefault(node.name, set()).add("POST")
    assert methods == {"create_checklist": {"POST"}}


def test_both_schema_flavours_ship_with_the_package() -> None:
    assert (SCHEMA_DIR / "postgresql.sql").is_file()
    assert (SCHEMA_DIR / "sqlite.sql").is_file()
