import logging

import pytest

from jfon.log_loader import parse_and_reconstruct


SAMPLE_LOG = """\
# captured by tracer 7874
render:1,start,1000
render:1,end,1400
upload:1,start,1100
render:2,start,1500
upload:1,end,1250
io:7,end,1600
render:2,end,1900
"""


@pytest.fixture
def sample_text():
    return SAMPLE_LOG


@pytest.fixture
def sample_events(sample_text):
    return parse_and_reconstruct(sample_text)


@pytest.fixture
def write_log(tmp_path):
    """Write log content into a temporary .jfon file and return its path."""

    def _write(content, name="trace.jfon"):
        path = tmp_path / name
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_app_logger():
    yield
    logger = logging.getLogger("jfon_viewer")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
