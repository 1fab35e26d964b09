"""Test fixtures for bwclient."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from bwclient.cli import CliClient
from bwclient.config import reset_config
from bwclient.rest import RestClient
from tests.fakes import FAST_RETRY, FakeRunner, FakeVault


@pytest.fixture(autouse=True)
def clean_config():
    """Reset config singleton between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest_asyncio.fixture
async def rest_client(fake_vault: FakeVault):
    client = RestClient(
        "http://bw.test",
        transport=httpx.MockTransport(fake_vault.handler),
        retry_policy=FAST_RETRY,
    )
    yield client
    await client.close()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def cli_client(fake_runner: FakeRunner) -> CliClient:
    return CliClient(fake_runner, retry_policy=FAST_RETRY)
