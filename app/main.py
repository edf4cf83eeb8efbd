"""
Local development server for MindMoney.

Serves the same router the Lambda handler uses, behind FastAPI:

    uvicorn app.main:app --reload

DESIGN PRINCIPLES:
1. No route is declared here; one catch-all forwards everything
2. The response envelope, CORS headers and status codes all come
   from the router, so local runs behave like the deployed API
"""

from functools import lru_cache

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mindmoney import __version__
from mindmoney.orchestrator import create_app_components
from mindmoney.router import ApiRequest, Router


app = FastAPI(title="MindMoney API", version=__version__)


@lru_cache()
def get_router() -> Router:
    return Router(create_app_components())


async def to_api_request(request: Request) -> ApiRequest:
    """Convert a Starlette request into the router's request type."""
    raw_body = await request.body()
    return ApiRequest(
        method=request.method,
        path=request.url.path,
        headers=dict(request.headers),
        query=dict(request.query_params),
        body=raw_body or None,
    )


@app.api_route(
    "/{full_path:path}",
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def dispatch(request: Request) -> JSONResponse:
    response = await get_router().handle(await to_api_request(request))
    return JSONResponse(
        content=response.body,
        status_code=response.status_code,
        headers=response.headers,
    )
