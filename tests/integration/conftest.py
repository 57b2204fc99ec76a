"""API client for the marketplace routers, without the production middleware."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from marketplace.api import register_exception_handlers, routers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)
