"""
Shared fixtures.

Nothing here touches the network or a real database:
- storage is the in-memory store
- text generation is a scripted stub
- tokens are "Bearer <subject>" strings checked by a stub verifier
"""

import asyncio
import threading
from typing import Optional

import pytest

from mindmoney.agents import FinanceAdvisorAgent
from mindmoney.auth import TokenClaims, extract_bearer_token
from mindmoney.config import AppSettings
from mindmoney.errors import AuthenticationError
from mindmoney.orchestrator import AppComponents
from mindmoney.router import ApiRequest, Router
from mindmoney.services.generation import TextGenerationClient
from mindmoney.services.storage import InMemoryFinanceStorage


class StubTextClient(TextGenerationClient):
    """Returns a fixed reply (or raises) and records every prompt."""

    def __init__(self, reply: str = "Generated advice."):
        self.reply = reply
        self.error: Optional[Exception] = None
        self.prompts: list[str] = []

    async def generate(self, prompt: str, model: Optional[str] = None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


class StubVerifier:
    """Accepts "Bearer <subject>"; rejects "Bearer invalid"."""

    def __init__(self):
        self.calls = 0
        self.thread_ids: list[int] = []

    def verify_request(self, headers, correlation_id=None) -> TokenClaims:
        self.calls += 1
        self.thread_ids.append(threading.get_ident())
        token = extract_bearer_token(headers)
        if token == "invalid":
            raise AuthenticationError("Invalid token")
        return TokenClaims(subject=token, email=f"{token}@example.com", name=token.title())


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return asyncio.run


@pytest.fixture
def storage():
    store = InMemoryFinanceStorage()
    yield store
    store.reset()


@pytest.fixture
def text_client():
    return StubTextClient()


@pytest.fixture
def verifier():
    return StubVerifier()


@pytest.fixture
def components(storage, text_client, verifier):
    return AppComponents(
        storage=storage,
        advisor=FinanceAdvisorAgent(text_client),
        verifier=verifier,
    )


@pytest.fixture
def app_settings():
    return AppSettings(
        stage_prefixes="dev",
        cors_allow_origin="*",
        enable_diagnostics=True,
        use_database=False,
    )


@pytest.fixture
def router(components, app_settings):
    return Router(components, settings=app_settings)


@pytest.fixture
def claims():
    return TokenClaims(subject="abc", email="abc@example.com", name="Abc")


@pytest.fixture
def call(router, run):
    """Send one request through the router."""

    def _call(method, path, token="abc", body=None, query=None, headers=None):
        all_headers = dict(headers or {})
        if token is not None:
            all_headers["Authorization"] = f"Bearer {token}"
        request = ApiRequest(
            method=method,
            path=path,
            headers=all_headers,
            query=query or {},
            body=body,
        )
        return run(router.handle(request))

    return _call
