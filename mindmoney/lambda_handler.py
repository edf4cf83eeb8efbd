"""
AWS Lambda entry point (API Gateway proxy integration).

The router and its components are built on the first invocation and
reused by every warm invocation of the same container. One event
loop is kept for the container's lifetime, because the Gemini async
client binds its channel to the loop it was first used on.
"""

import asyncio
from functools import lru_cache

from mindmoney.orchestrator import create_app_components
from mindmoney.router import ApiRequest, Router


_loop = asyncio.new_event_loop()


@lru_cache()
def get_router() -> Router:
    return Router(create_app_components())


def handler(event, context):
    """Lambda handler: proxy event in, proxy response dict out."""
    request = ApiRequest.from_lambda_event(event or {})
    response = _loop.run_until_complete(get_router().handle(request))
    return response.to_lambda()
