import ast
from pathlib import Path

import pytest

CORE_DIR = Path(__file__).resolve().parent.parent / "src" / "tfe_client" / "core"
CORE_PACKAGE = "tfe_client.core"
LAYERS_ABOVE_CORE = ("tfe_client.resources", "tfe_client.models")


def imported_modules(source: str, package: str = CORE_PACKAGE) -> list[str]:
    """Absolute names of everything ``source`` imports from inside ``package``."""
    names: list[str] = []
    for node in ast.walk(ast.parse(source)):
        if isinstance(node, ast.Import):
            names.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                parts = package.split(".")
                base = ".".join(parts[: len(parts) - node.level + 1])
                module = f"{base}.{node.module}" if node.module else base
            else:
                module = node.module or ""
            names.append(module)
            # ``from pkg import submodule`` reaches the submodule too.
            names.extend(f"{module}.{alias.name}" for alias in node.names)
    return names


def upward_imports(source: str) -> list[str]:
    return [
        name
        for name in imported_modules(source)
        for layer in LAYERS_ABOVE_CORE
        if name == layer or name.startswith(layer + ".")
    ]


@pytest.mark.parametrize("path", sorted(CORE_DIR.glob("*.py")), ids=lambda p: p.name)
def test_core_module_stays_resource_agnostic(path):
    assert upward_imports(path.read_text(encoding="utf-8")) == []


def test_upward_imports_are_detected():
    source = (
        "from tfe_client.models import Workspace\n"
        "from ..resources import runs\n"
        "from .. import models\n"
        "import tfe_client.resources.meta\n"
        "from .jsonapi import JSONAPIModel\n"
        "import httpx\n"
    )

    assert upward_imports(source) == [
        "tfe_client.models",
        "tfe_client.models.Workspace",
        "tfe_client.resources",
        "tfe_client.resources.runs",
        "tfe_client.models",
        "tfe_client.resources.meta",
    ]
