#!/usr/bin/env python3
"""Validate the masweep import graph.

Checks:
1. No circular dependencies
2. Layer rules respected (lower → higher forbidden)
"""

import ast
import sys
from pathlib import Path

# Lower layers never import higher ones.
LAYERS = {
    0: ["masweep/core/exceptions.py", "masweep/core/types.py", "masweep/core/metrics.py"],
    1: ["masweep/core/config.py", "masweep/core/logs.py"],
    2: [
        "masweep/sweep/serializer.py",
        "masweep/sweep/extractor.py",
        "masweep/sweep/ranker.py",
    ],
    3: ["masweep/sweep/runner.py"],
    4: ["masweep/sweep/orchestrator.py", "masweep/sweep/single.py"],
    5: ["masweep/cli.py"],
}


def get_module_layer(module_path: str) -> int | None:
    """Determine which layer a module belongs to."""
    for layer, patterns in LAYERS.items():
        for pattern in patterns:
            if module_path.startswith(pattern.replace(".py", "")):
                return layer
    return None


def extract_imports(file_path: Path, *, runtime_only: bool = True) -> list[str]:
    """Extract imports from a Python file.

    Imports under `if TYPE_CHECKING:` are skipped when runtime_only is set;
    they never execute, so they cannot form a cycle.
    """
    try:
        tree = ast.parse(file_path.read_text(encoding="utf-8"))
    except (SyntaxError, UnicodeDecodeError):
        return []

    skipped: set[int] = set()
    if runtime_only:
        for node in ast.walk(tree):
            if isinstance(node, ast.If) and isinstance(node.test, ast.Name) and node.test.id == "TYPE_CHECKING":
                for child in node.body:
                    for sub in ast.walk(child):
                        skipped.add(id(sub))

    imports = []
    for node in ast.walk(tree):
        if id(node) in skipped:
            continue
        if isinstance(node, ast.Import):
            for alias in node.names:
                imports.append(alias.name)
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                imports.append(node.module)

    return imports


def check_circular_deps(imports: dict[str, set[str]]) -> list[str]:
    """Detect circular dependencies using DFS."""
    errors = []

    def visit(module: str, path: list[str]) -> None:
        if module in path:
            cycle = " → ".join(path + [module])
            errors.append(f"CIRCULAR DEPENDENCY: {cycle}")
            return

        if module not in imports:
            return

        for dep in imports[module]:
            visit(dep, path + [module])

    for module in imports:
        visit(module, [])

    return errors


def check_layer_violations(file_path: Path, imports: list[str], repo_root: Path) -> list[str]:
    """Check if imports violate layer rules (lower → higher forbidden)."""
    errors = []

    rel_path = file_path.relative_to(repo_root).as_posix()
    module_layer = get_module_layer(rel_path)

    if module_layer is None:
        return []  # Not in layer system (e.g., __init__.py)

    for imp in imports:
        if not imp.startswith("masweep."):
            continue  # External import

        import_layer = get_module_layer(imp.replace(".", "/"))

        if import_layer is None:
            continue

        if import_layer > module_layer:
            errors.append(f"LAYER VIOLATION: {rel_path} (layer {module_layer}) imports {imp} (layer {import_layer})")

    return errors


def validate(repo_root: Path) -> list[str]:
    errors: list[str] = []
    all_imports: dict[str, set[str]] = {}

    for file in sorted(repo_root.glob("masweep/**/*.py")):
        if "__pycache__" in str(file):
            continue

        imports = extract_imports(file)
        module_name = file.relative_to(repo_root).with_suffix("").as_posix().replace("/", ".")
        all_imports[module_name] = set(imports)
        errors.extend(check_layer_violations(file, imports, repo_root))

    errors.extend(check_circular_deps(all_imports))
    return errors


def main() -> int:
    repo_root = Path(__file__).parent.parent

    print("Validating code dependencies...")
    errors = validate(repo_root)

    if errors:
        print("\nDependency validation failed:\n")
        for error in errors:
            print(f"  {error}")
        print(f"\n{len(errors)} violation(s) found.")
        return 1

    print("No circular dependencies or layer violations detected.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
