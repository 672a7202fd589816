import logging
import sys
from pathlib import Path

import pytest

# Ensure custom_components is importable when running tests directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

_CAPTURED_LOGGERS = ("custom_components.lexman_remote", "lexman.decoder")


@pytest.fixture(autouse=True)
def _restore_integration_loggers():
    """Undo diagnostics capture left behind by entries a test never unloads."""

    saved = {}
    for name in _CAPTURED_LOGGERS:
        logger = logging.getLogger(name)
        saved[name] = (logger.level, logger.propagate, list(logger.handlers))
    yield
    for name, (level, propagate, handlers) in saved.items():
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = propagate
        logger.handlers[:] = handlers
