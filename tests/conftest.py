"""Shared fixtures for the test suite."""

import logging

import pytest

from qualtrics_sync.sync.contact import ContactRecord


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo handler and propagation changes made by setup_logging."""
    logger = logging.getLogger("qualtrics_sync")
    yield
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.disabled = False
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_contact():
    """Factory for complete source contacts."""

    def _make(ref, email=None, first="First", last="Last", embedded=None, id=None):
        return ContactRecord(
            external_reference=ref,
            email=email if email is not None else f"{ref.lower()}@example.com",
            first_name=first,
            last_name=last,
            embedded_data=embedded,
            id=id,
        )

    return _make
