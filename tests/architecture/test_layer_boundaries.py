"""
Layer boundaries of the inventory packages.

1. inventory_kernel/** may NOT import inventory_config, inventory_batch or
   inventory_services.  The kernel never depends upward.

2. inventory_kernel/domain/** is pure: no SQLAlchemy and no imports from
   db/, models/, storage/ or services/.

3. Consumer workflows (inventory_services/**) and the scheduler
   (inventory_batch/**) reach persistence only through kernel services:
   no imports of inventory_kernel.models, .storage or .db.

These tests read source code via AST; they import nothing.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    """(line_number, module) for every import in a file."""
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            if any(module == p or module.startswith(f"{p}.") for p in forbidden):
                found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:
    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations(
            "inventory_kernel",
            ("inventory_config", "inventory_batch", "inventory_services"),
        )
        assert not violations, (
            "inventory_kernel/** must not import upward packages:\n"
            + "\n".join(violations)
        )


class TestDomainPurity:
    def test_domain_has_no_io_imports(self):
        violations = _violations(
            "inventory_kernel/domain",
            (
                "sqlalchemy",
                "inventory_kernel.db",
                "inventory_kernel.models",
                "inventory_kernel.storage",
                "inventory_kernel.services",
            ),
        )
        assert not violations, (
            "inventory_kernel/domain/** must stay pure:\n" + "\n".join(violations)
        )


class TestPersistenceGate:
    FORBIDDEN = (
        "sqlalchemy",
        "inventory_kernel.db",
        "inventory_kernel.models",
        "inventory_kernel.storage",
    )

    def test_workflows_go_through_the_ledger(self):
        violations = _violations("inventory_services", self.FORBIDDEN)
        assert not violations, (
            "inventory_services/** must not touch persistence directly:\n"
            + "\n".join(violations)
        )

    def test_scheduler_goes_through_the_request_service(self):
        violations = _violations("inventory_batch", self.FORBIDDEN)
        assert not violations, (
            "inventory_batch/** must not touch persistence directly:\n"
            + "\n".join(violations)
        )
