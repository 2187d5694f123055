"""
Pytest configuration and fixtures for FHIR query cache tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Generator
from unittest.mock import patch

import httpx
import pytest

from fhircache.cache import InMemoryDocumentStore, QueryCache
from fhircache.config import Settings, clear_settings_cache
from fhircache.data import ResourceFetchService
from fhircache.logging import NullLogger

FHIR_HOST = "https://10.153.7.80:444/FHIRService"
TOKEN = "testToken"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "FHIR_API_HOST": FHIR_HOST,
        "FHIR_API_PATH": "",
        "FHIR_API_TIMEOUT_SECONDS": "5",
        "CACHE_NAMESPACE": "Fhir",
        "CACHE_DIR": str(temp_dir / "cache"),
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from fhircache.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def null_logger() -> NullLogger:
    return NullLogger()


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def query_cache(memory_store: InMemoryDocumentStore, null_logger: NullLogger) -> QueryCache:
    return QueryCache(memory_store, logger=null_logger)


@pytest.fixture
def make_service(null_logger: NullLogger) -> Callable[[Handler], ResourceFetchService]:
    """Build ResourceFetchService instances answering from a handler function."""
    def factory(handler: Handler) -> ResourceFetchService:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ResourceFetchService(FHIR_HOST, client=client, logger=null_logger)

    return factory
