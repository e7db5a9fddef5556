"""Load Python source files from model and migration directories.

Each call executes the file into a brand-new module object.  The module is
registered in ``sys.modules`` only while it executes (so dataclasses and
pickling can resolve ``__module__``) and removed afterwards, so a later scan
always sees the file's current contents.
"""

from __future__ import annotations

import importlib.util
import re
import sys
from collections.abc import Iterator
from pathlib import Path
from types import ModuleType

_MODULE_PREFIX = "_strata_source"


def _module_name(path: Path, namespace: str) -> str:
    stem = re.sub(r"\W", "_", path.stem)
    return f"{_MODULE_PREFIX}.{namespace}.{stem}"


def load_source_module(path: str | Path, namespace: str = "models") -> ModuleType:
    """
    Execute *path* as a fresh module.

    Raises:
        ImportError: If no loader can be built for *path*.
        Exception: Whatever the file raises while executing.
    """
    path = Path(path)
    name = _module_name(path, namespace)
    spec = importlib.util.spec_from_file_location(name, str(path))
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load module from: {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    finally:
        sys.modules.pop(name, None)
    return module


def iter_source_files(directory: str | Path) -> Iterator[Path]:
    """Yield ``*.py`` files in *directory*, sorted, skipping ``_``/``.`` names."""
    for path in sorted(Path(directory).glob("*.py")):
        if path.name.startswith(("_", ".")):
            continue
        yield path


__all__ = ["load_source_module", "iter_source_files"]
