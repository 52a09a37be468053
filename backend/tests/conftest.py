"""Shared test fixtures and configuration for backend tests."""
import asyncio

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from chatroom.chat.service import ChatService
from chatroom.config import reset_config
from chatroom.main import app
from fakes import ManualClock


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload config for each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def api_client():
    """Provide a TestClient with the app lifespan running.

    The lifespan creates a fresh ChatService, so every test starts with an
    empty room.
    """
    with TestClient(app) as client:
        yield client


@pytest_asyncio.fixture
async def service():
    """A started ChatService; its writer tasks are cancelled on teardown."""
    svc = ChatService()
    svc.start()
    yield svc
    svc.stop()
    await asyncio.sleep(0)


@pytest.fixture
def manual_clock():
    return ManualClock()
