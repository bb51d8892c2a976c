# common/scripts/get_project_root.py
from pathlib import Path


def get_project_root() -> Path:
    """
    Directory holding the top-level packages (``bloodlink`` and ``common``).

    Walks up from this file until it leaves the package tree, i.e. the
    first ancestor without an ``__init__.py``.
    """
    current = Path(__file__).resolve().parent
    while current != current.parent:
        if not (current / "__init__.py").exists():
            return current
        current = current.parent
    return Path.cwd()


__all__ = ["get_project_root"]
