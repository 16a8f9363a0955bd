"""Global pytest fixtures for testing."""

import logging
from collections.abc import Generator

import pytest

from argot_core.config import XmlRpcClientSettings

METHOD_RESPONSE = b"""<?xml version="1.0" encoding="utf-8"?>
<methodResponse>
  <params>
    <param>
      <value><string>pong</string></value>
    </param>
  </params>
</methodResponse>
"""

FAULT_RESPONSE = b"""<?xml version="1.0" encoding="utf-8"?>
<methodResponse>
  <fault>
    <value>
      <struct>
        <member><name>faultCode</name><value><int>4</int></value></member>
        <member><name>faultString</name><value><string>Too many parameters.</string></value></member>
      </struct>
    </value>
  </fault>
</methodResponse>
"""


@pytest.fixture
def client_settings() -> XmlRpcClientSettings:
    """Settings isolated from the process environment and any .env file."""
    return XmlRpcClientSettings(
        _env_file=None,
        host=None,
        user_agent="",
        timeout_seconds=15.0,
        use_default_credentials=False,
        allow_content_type_parameters=False,
        username="",
        password="",
        proxy=None,
    )


@pytest.fixture
def method_response() -> bytes:
    return METHOD_RESPONSE


@pytest.fixture
def fault_response() -> bytes:
    return FAULT_RESPONSE


@pytest.fixture
def argot_logger() -> Generator[logging.Logger, None, None]:
    """The package logger, restored to its original handlers and level afterwards."""
    logger = logging.getLogger("argot")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)
    logger.setLevel(level)
