"""Shared fixtures for runit tests."""

import textwrap
from pathlib import Path
from typing import Callable, List

import pytest

from runit.metadata import MetadataStore, default_store


@pytest.fixture
def store() -> MetadataStore:
    """A fresh metadata store, isolated from the decorators' default store."""
    return MetadataStore()


@pytest.fixture(autouse=True)
def clean_default_store():
    """Forget classes registered through decorators after each test."""
    yield
    default_store.clear()


@pytest.fixture
def reports() -> List[str]:
    """Collects rendered reports instead of printing them."""
    return []


@pytest.fixture
def write_module(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a dedented Python source file under tmp_path."""
    def _write(relative: str, source: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source))
        return path
    return _write
