"""
Kernel Boundary & Invariants Contract.

1. stock_kernel/** may NOT import stock_api or stock_config.  The kernel
   never depends upward; settings reach it as plain arguments.

2. Only the transaction engine and the item catalog may construct an
   ItemLedger.  Stock moves nowhere else.

3. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

from stock_kernel.invariants import (
    ALL_STOCK_INVARIANTS,
    FORBIDDEN_KERNEL_IMPORTS,
    StockInvariant,
)

ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    """Return all .py files under a top-level package."""
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:
    """stock_kernel/** must not import the API or config packages."""

    def test_kernel_does_not_import_forbidden_packages(self):
        violations: list[str] = []

        for filepath in _python_files("stock_kernel"):
            for lineno, module in _extract_imports(filepath):
                for prefix in FORBIDDEN_KERNEL_IMPORTS:
                    if module == prefix or module.startswith(f"{prefix}."):
                        violations.append(f"  {filepath.relative_to(ROOT)}:{lineno} imports '{module}'")

        assert not violations, (
            "Kernel boundary violation: stock_kernel/** must not import "
            "stock_api or stock_config:\n" + "\n".join(violations)
        )

    def test_scan_found_kernel_sources(self):
        assert len(_python_files("stock_kernel")) > 10


class TestStockMovesOnlyThroughServices:
    """ItemLedger is constructed only by the engine and the catalog."""

    ALLOWED = {
        "stock_kernel/services/application_engine.py",
        "stock_kernel/services/item_catalog.py",
        "stock_kernel/services/item_ledger.py",
        "stock_kernel/services/__init__.py",
    }

    def test_item_ledger_importers(self):
        offenders = []
        for package in ("stock_kernel", "stock_api", "stock_config"):
            for filepath in _python_files(package):
                rel = filepath.relative_to(ROOT).as_posix()
                if rel in self.ALLOWED:
                    continue
                for _, module in _extract_imports(filepath):
                    if module == "stock_kernel.services.item_ledger":
                        offenders.append(rel)

        assert not offenders, f"ItemLedger imported outside the kernel services: {offenders}"


class TestInvariantsDeclaration:

    def test_all_invariants_listed(self):
        assert ALL_STOCK_INVARIANTS == frozenset(StockInvariant)
        assert len(ALL_STOCK_INVARIANTS) == 5

    def test_forbidden_imports_declared(self):
        assert set(FORBIDDEN_KERNEL_IMPORTS) == {"stock_api", "stock_config"}
