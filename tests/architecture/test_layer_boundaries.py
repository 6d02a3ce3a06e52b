"""
Import-boundary enforcement for the stock ledger packages.

1. Engine purity     -- stock_engines/** may not import DB, ORM, models,
                        selectors, services, config or the API.
2. Engine no-impure  -- stock_engines/** and stock_services/** may not read
                        the wall clock; "today" arrives through a Clock.
3. Kernel direction  -- stock_kernel/** may not import any layer above it.
4. Domain purity     -- stock_kernel/domain/** may not import SQLAlchemy.
5. Config ownership  -- only stock_config reads YAML or the environment.
6. Public exports    -- every name a package lists in __all__ resolves.

Checks 1-5 scan source via AST; check 6 imports each package.
"""

import ast
import importlib
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _tree(path: Path) -> ast.AST:
    return ast.parse(path.read_text(), filename=str(path))


def _imports(path: Path) -> list[tuple[int, str]]:
    found: list[tuple[int, str]] = []
    for node in ast.walk(_tree(path)):
        if isinstance(node, ast.Import):
            found.extend((node.lineno, alias.name) for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            found.append((node.lineno, node.module))
    return found


def _attribute_refs(path: Path) -> list[tuple[int, str]]:
    """(line, 'receiver.attr') for every two-level attribute reference."""
    return [
        (node.lineno, f"{node.value.id}.{node.attr}")
        for node in ast.walk(_tree(path))
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name)
    ]


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


def _violations(packages: tuple[str, ...], forbidden: tuple[str, ...]) -> list[str]:
    return [
        f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'"
        for package in packages
        for path in _python_files(package)
        for lineno, module in _imports(path)
        if _matches_any(module, forbidden)
    ]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestEnginePurity:
    FORBIDDEN = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "yaml",
        "fastapi",
        "stock_kernel.db",
        "stock_kernel.models",
        "stock_kernel.selectors",
        "stock_kernel.services",
        "stock_services",
        "stock_config",
        "stock_api",
    )

    def test_engines_import_no_infrastructure(self):
        violations = _violations(("stock_engines",), self.FORBIDDEN)
        assert not violations, "stock_engines must stay pure:\n" + "\n".join(violations)


class TestNoWallClock:
    IMPURE = ("datetime.now", "datetime.utcnow", "date.today", "time.time", "os.environ", "os.getenv")

    def test_engines_and_services_take_time_from_a_clock(self):
        violations = [
            f"  {path.relative_to(ROOT)}:{lineno} uses {ref}"
            for package in ("stock_engines", "stock_services")
            for path in _python_files(package)
            for lineno, ref in _attribute_refs(path)
            if ref in self.IMPURE
        ]
        assert not violations, "wall clock or environment read outside the shell:\n" + "\n".join(violations)


class TestKernelDirection:
    def test_kernel_never_imports_upward(self):
        violations = _violations(
            ("stock_kernel",),
            ("stock_engines", "stock_services", "stock_config", "stock_api"),
        )
        assert not violations, "stock_kernel must not depend on outer layers:\n" + "\n".join(violations)

    def test_services_never_import_the_api(self):
        violations = _violations(("stock_services",), ("stock_api", "fastapi"))
        assert not violations, "\n".join(violations)


class TestDomainPurity:
    def test_domain_has_no_orm(self):
        violations = _violations(("stock_kernel/domain",), ("sqlalchemy",))
        assert not violations, "\n".join(violations)


class TestConfigOwnership:
    def test_only_config_reads_yaml(self):
        violations = _violations(("stock_kernel", "stock_engines", "stock_services", "stock_api"), ("yaml",))
        assert not violations, "\n".join(violations)


def _exporting_packages() -> list[str]:
    found = []
    for package in ("stock_kernel", "stock_engines", "stock_services", "stock_config", "stock_api"):
        for init in sorted((ROOT / package).rglob("__init__.py")):
            if "__all__" in init.read_text():
                found.append(".".join(init.parent.relative_to(ROOT).parts))
    return found


class TestPublicExports:
    @pytest.mark.parametrize("package", _exporting_packages())
    def test_all_names_resolve(self, package):
        module = importlib.import_module(package)
        missing = [name for name in module.__all__ if not hasattr(module, name)]
        assert not missing, f"{package}.__all__ lists undefined names: {missing}"
