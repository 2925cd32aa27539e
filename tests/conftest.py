"""Shared pytest fixtures for FilterTree tests."""
import os
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Any

import pytest
import yaml

from filtertree.core import logging as logging_module
from filtertree.core.logging import Logger, LogLevel


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """Create a directory tree to scan.

    source/
        1.txt            (10 bytes)
        2.txt            (20 bytes)
        dir1/
            other/c.txt  (3 bytes)
            sub1/a.txt   (1 byte)
            sub2/b.txt   (2 bytes)
        dir2/
            d.txt        (4 bytes)
    """
    source = temp_dir / "source"
    source.mkdir()

    (source / "1.txt").write_text("x" * 10)
    (source / "2.txt").write_text("x" * 20)

    for sub, name, size in [("sub1", "a.txt", 1), ("sub2", "b.txt", 2), ("other", "c.txt", 3)]:
        (source / "dir1" / sub).mkdir(parents=True)
        (source / "dir1" / sub / name).write_text("x" * size)

    (source / "dir2").mkdir()
    (source / "dir2" / "d.txt").write_text("x" * 4)

    return source


@pytest.fixture
def wide_dir(temp_dir: Path) -> Path:
    """Create a wider, deeper tree for concurrency tests."""
    root = temp_dir / "wide"
    root.mkdir()
    for i in range(6):
        branch = root / f"branch_{i}"
        current = branch
        for depth in range(3):
            current = current / f"level_{depth}"
            current.mkdir(parents=True)
            for j in range(4):
                (current / f"file_{j}.dat").write_text("y" * (i + j + depth))
        (branch / "top.log").write_text("log")
    return root


@pytest.fixture
def write_rules(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing a rule file and returning its path."""

    def _write(lines: List[str], name: str = "filter.txt") -> Path:
        path = temp_dir / name
        path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Provide a sample FilterTree configuration."""
    return {
        "filtertree": {
            "rules": {"file": "rules.txt"},
            "scan": {"checkers": 8, "sort": "size"},
            "logging": {"level": "DEBUG", "file": None},
        }
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a configuration file."""
    config_path = temp_dir / "filtertree.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path


@pytest.fixture
def quiet_logger() -> Logger:
    """Logger that only reports errors."""
    return Logger("filtertree.test", level=LogLevel.ERROR)


@pytest.fixture(autouse=True)
def reset_singletons(monkeypatch):
    """Reset global instances and FILTERTREE_* variables between tests."""
    for key in list(os.environ):
        if key.startswith("FILTERTREE_"):
            monkeypatch.delenv(key)
    logging_module._global_logger = None
    yield
    logging_module._global_logger = None
