"""
Discovery of test modules under a container.

A container is a package (module object or dotted import name) or a
directory on disk. Every module below it whose file name matches the
discovery pattern is a loadable unit. This is the default test source used
by the loader; any callable with the same signature can replace it.
"""

import fnmatch
import hashlib
import importlib
import importlib.util
import logging
import pkgutil
import sys
from pathlib import Path
from types import ModuleType
from typing import Callable, Iterator, Union

from .errors import DiscoveryError

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "test_*.py"

Root = Union[ModuleType, str, Path]
TestSource = Callable[[Root, str], Iterator[ModuleType]]


def _matches(module_file: str, pattern: str) -> bool:
    return fnmatch.fnmatch(Path(module_file).name, pattern)


def _import(name: str) -> ModuleType:
    try:
        return importlib.import_module(name)
    except Exception as e:
        raise DiscoveryError("Failed to import test module", name) from e


def _import_file(path: Path, base: Path) -> ModuleType:
    """Import a file by location under a name derived from its path."""
    relative = path.relative_to(base).with_suffix("")
    digest = hashlib.sha1(str(base).encode("utf-8")).hexdigest()[:8]
    name = f"runit_discovered_{digest}." + ".".join(relative.parts)
    if name in sys.modules:
        return sys.modules[name]

    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise DiscoveryError("Cannot load test module", str(path))
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)
    except Exception as e:
        del sys.modules[name]
        raise DiscoveryError("Failed to import test module", str(path)) from e
    return module


def _iter_package(package: ModuleType, pattern: str) -> Iterator[ModuleType]:
    module_file = getattr(package, "__file__", None)
    if module_file and _matches(module_file, pattern):
        yield package

    search_path = getattr(package, "__path__", None)
    if search_path is None:
        return

    infos = sorted(
        pkgutil.walk_packages(search_path, prefix=package.__name__ + "."),
        key=lambda info: info.name,
    )
    for info in infos:
        if info.ispkg:
            continue
        leaf = info.name.rsplit(".", 1)[-1] + ".py"
        if fnmatch.fnmatch(leaf, pattern):
            logger.debug("Discovered module %s", info.name)
            yield _import(info.name)


def _iter_directory(directory: Path, pattern: str) -> Iterator[ModuleType]:
    for path in sorted(directory.rglob("*.py")):
        if "__pycache__" in path.parts or not _matches(str(path), pattern):
            continue
        logger.debug("Discovered file %s", path)
        yield _import_file(path, directory)


def iter_test_modules(root: Root, pattern: str = DEFAULT_PATTERN) -> Iterator[ModuleType]:
    """
    Yield every loadable test module under a container, recursively.

    Args:
        root: Module object, dotted package name, or directory path
        pattern: fnmatch pattern applied to module file names

    Yields:
        Imported modules in sorted name order

    Raises:
        DiscoveryError: If the root is not usable or a module fails to import
    """
    if isinstance(root, ModuleType):
        yield from _iter_package(root, pattern)
        return

    if isinstance(root, Path) or (isinstance(root, str) and ("/" in root or "\\" in root or Path(root).is_dir())):
        directory = Path(root)
        if not directory.is_dir():
            raise DiscoveryError("Test root is not a directory", str(root))
        yield from _iter_directory(directory.resolve(), pattern)
        return

    if isinstance(root, str):
        yield from _iter_package(_import(root), pattern)
        return

    raise DiscoveryError("Unsupported test root", repr(root))
