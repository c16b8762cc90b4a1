import logging

import pytest

from qrstyle.generator import QRCodeGenerator
from qrstyle.logging import AUDIT, ROOT_LOGGER

URL = "https://example.com"


@pytest.fixture
def generator():
    return QRCodeGenerator().set_data(URL)


@pytest.fixture
def audit_events(caplog):
    """Return a callable listing (event, ctx) pairs captured so far."""
    caplog.set_level(AUDIT, logger=ROOT_LOGGER)

    def events():
        return [
            (r.event, r.ctx) for r in caplog.records
            if r.levelno == AUDIT and hasattr(r, "event")
        ]

    return events


@pytest.fixture
def clean_logger():
    """Undo setup_logging() side effects on the qrstyle logger."""
    root = logging.getLogger(ROOT_LOGGER)
    saved_level, saved_handlers = root.level, list(root.handlers)
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)