from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.project_builder import ProjectBuilder


@pytest.fixture
def project_builder(tmp_path: Path) -> ProjectBuilder:
    """Provide a reusable project builder rooted at the pytest tmp_path."""
    return ProjectBuilder(tmp_path)


@pytest.fixture(autouse=True)
def _reset_depscan_logger() -> Iterator[None]:
    """Undo CLI logging configuration so caplog sees depscan records."""
    yield
    logger = logging.getLogger("depscan")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
