import ast
from pathlib import Path


def test_chainkit_source_does_not_import_cart_chain():
    repo_root = Path(__file__).resolve().parents[1]
    chainkit_dir = repo_root / "chainkit"

    forbidden_prefixes = ("cart_chain",)
    offenders: list[str] = []

    for path in sorted(chainkit_dir.rglob("*.py")):
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    if alias.name.startswith(forbidden_prefixes):
                        offenders.append(f"{path}: import {alias.name}")
            elif isinstance(node, ast.ImportFrom):
                if node.module is None:
                    continue
                if node.module.startswith(forbidden_prefixes):
                    offenders.append(f"{path}: from {node.module} import ...")

    assert offenders == []
