"""
Pytest configuration and fixtures for Continuum tests.

This module provides:
- Network blocking fixture to prevent accidental provider calls
- Common fixtures for settings, storage and scripted providers
"""

import socket
from unittest.mock import patch

import pytest
from pydantic import SecretStr

from continuum.config import LLMConfiguration, PipelineConfig
from continuum.models import RuntimeSettings
from continuum.services import InMemoryStorage


class NetworkBlockedError(Exception):
    """Raised when a test attempts to make a network connection."""
    pass


def _block_socket_connect(*args, **kwargs):
    """Block all socket connections to prevent accidental API calls."""
    raise NetworkBlockedError(
        "Network access is blocked in unit tests. "
        "Use the scripted clients in fakes.py instead of real providers."
    )


@pytest.fixture(autouse=True)
def block_network():
    """
    Automatically block all network connections in tests.

    Provider SDKs are never meant to be reached from unit tests; a test that
    does so fails loudly instead of spending credits.
    """
    with patch.object(socket.socket, 'connect', _block_socket_connect):
        with patch.object(socket, 'create_connection', _block_socket_connect):
            yield


@pytest.fixture
def runtime_settings():
    """Settings carrying a usable provider key."""
    return RuntimeSettings(
        behavior_prompt="You narrate a quiet harbor town.",
        framework_template="Location: <place>\n<story>",
        provider_api_key=SecretStr("test-key"),
    )


@pytest.fixture
def storage(runtime_settings):
    return InMemoryStorage(runtime_settings)


@pytest.fixture
def config():
    """Configuration with zero-delay backoff."""
    return LLMConfiguration(pipeline=PipelineConfig(
        backoff_base_seconds=0.0,
        backoff_cap_seconds=0.0,
        backoff_jitter_seconds=0.0,
    ))
