import logging

import pytest


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI runs attach handlers to the cc_tree logger; drop them between tests."""
    yield
    logger = logging.getLogger("cc_tree")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
