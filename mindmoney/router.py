"""
Request Router

Turns one inbound HTTP request into one JSON response.

Per request:
1. OPTIONS is answered immediately (CORS preflight)
2. The path is normalized (proxy parameter, stage prefix, query
   string, trailing slash)
3. Public paths skip token verification; every other path needs a
   valid bearer token
4. METHOD + path is matched against anchored route templates
5. Body and query parameters are validated into request models
6. The flow runs; its result is wrapped in the response envelope

DESIGN DECISION: Errors are caught ONCE, here.
Flows raise typed MindMoneyErrors; the router maps each to its
status code and a {success: false, error} body. Anything else is a
bug and becomes a 500 "Internal server error", with the traceback
in the log only.
"""

import asyncio
import base64
import json
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional
from uuid import UUID

import structlog
from pydantic import BaseModel

from mindmoney.audit import create_correlation_id
from mindmoney.auth import TokenClaims
from mindmoney.config import AppSettings, get_settings, validate_all_settings
from mindmoney.errors import MindMoneyError, NotFoundError
from mindmoney.models import (
    ChatMessageInput,
    QuizSubmission,
    SavingsGoalInput,
    SpendingEntryInput,
)
from mindmoney.orchestrator import AppComponents
from mindmoney.validation import parse_body, parse_date_param


logger = structlog.get_logger(__name__)

HEALTH_PATH = "/health"
DIAGNOSTIC_PATHS = ("/test-db", "/test-gemini", "/test-schema", "/debug")


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

@dataclass
class ApiRequest:
    """A transport-independent HTTP request."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: Any = None
    path_parameters: dict[str, str] = field(default_factory=dict)
    correlation_id: UUID = field(default_factory=create_correlation_id)

    @classmethod
    def from_lambda_event(cls, event: Mapping[str, Any]) -> "ApiRequest":
        """Build a request from an API Gateway proxy event (REST or HTTP API)."""
        context = event.get("requestContext") or {}
        method = event.get("httpMethod") or (context.get("http") or {}).get("method") or "GET"
        path = event.get("path") or event.get("rawPath") or event.get("resource") or "/"

        body = event.get("body")
        if body and event.get("isBase64Encoded"):
            body = base64.b64decode(body)

        return cls(
            method=method.upper(),
            path=path,
            headers=dict(event.get("headers") or {}),
            query=dict(event.get("queryStringParameters") or {}),
            body=body,
            path_parameters=dict(event.get("pathParameters") or {}),
            correlation_id=_correlation_id_from(context.get("requestId")),
        )


def _correlation_id_from(request_id: Optional[str]) -> UUID:
    """Reuse the gateway's request id when it is a UUID."""
    if request_id:
        try:
            return UUID(request_id)
        except ValueError:
            pass
    return create_correlation_id()


@dataclass
class ApiResponse:
    status_code: int
    body: Any
    headers: dict[str, str] = field(default_factory=dict)

    def to_lambda(self) -> dict:
        """Proxy-integration response dict."""
        return {
            "statusCode": self.status_code,
            "headers": self.headers,
            "body": json.dumps(self.body),
        }


def to_payload(data: Any) -> Any:
    """Convert flow results into JSON-ready values."""
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, (list, tuple)):
        return [to_payload(item) for item in data]
    return data


# =============================================================================
# ROUTES
# =============================================================================

@dataclass
class RouteContext:
    """What a route handler gets: the request, the caller and path values."""

    request: ApiRequest
    claims: Optional[TokenClaims]
    params: dict[str, str]


Handler = Callable[[RouteContext], Awaitable[Any]]

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class Route:
    method: str
    template: str
    handler: Handler
    pattern: re.Pattern

    @classmethod
    def compile(cls, method: str, template: str, handler: Handler) -> "Route":
        """
        Compile a template like /spending/entry/{id}.

        Placeholders match exactly one non-empty path segment and the
        pattern is anchored at both ends.
        """
        regex, position = "^", 0
        for placeholder in _PLACEHOLDER.finditer(template):
            regex += re.escape(template[position:placeholder.start()])
            regex += f"(?P<{placeholder.group(1)}>[^/]+)"
            position = placeholder.end()
        regex += re.escape(template[position:]) + "$"
        return cls(method=method, template=template, handler=handler, pattern=re.compile(regex))

    def match(self, method: str, path: str) -> Optional[dict[str, str]]:
        if method != self.method:
            return None
        found = self.pattern.match(path)
        return found.groupdict() if found else None


# =============================================================================
# ROUTER
# =============================================================================

class Router:
    """
    Dispatches requests to the flows of one AppComponents.

    Holds no per-request state; one instance serves the process.
    """

    def __init__(
        self,
        components: AppComponents,
        settings: Optional[AppSettings] = None,
    ):
        self._components = components
        self._settings = settings or get_settings().app
        self._public_paths = {HEALTH_PATH}
        if self._settings.enable_diagnostics:
            self._public_paths.update(DIAGNOSTIC_PATHS)
        self._routes = self._build_routes()

    def _build_routes(self) -> list[Route]:
        table = [
            ("GET", HEALTH_PATH, self._health),
            # Quiz
            ("POST", "/quiz/submit", self._submit_quiz),
            ("GET", "/quiz/analysis/{userId}", self._get_quiz_analysis),
            # Spending journal
            ("POST", "/spending/entry", self._add_entry),
            ("GET", "/spending/entries", self._list_entries),
            ("GET", "/spending/entries/{userId}", self._list_entries),
            ("GET", "/spending/entry/{id}", self._get_entry),
            ("PUT", "/spending/entry/{id}", self._update_entry),
            ("DELETE", "/spending/entry/{id}", self._delete_entry),
            # Savings
            ("POST", "/savings/goal", self._set_goal),
            ("GET", "/savings/goal/{userId}", self._get_goal),
            # Analysis
            ("GET", "/analysis/daily/{userId}", self._daily_analysis),
            # Advisor chat
            ("POST", "/chat/message", self._post_chat),
            ("GET", "/chat/history/{userId}", self._chat_history),
        ]
        if self._settings.enable_diagnostics:
            table += [
                ("GET", "/test-db", self._test_db),
                ("GET", "/test-gemini", self._test_gemini),
                ("GET", "/test-schema", self._test_schema),
                ("GET", "/debug", self._debug),
            ]
        return [Route.compile(method, template, handler) for method, template, handler in table]

    # -------------------------------------------------------------------------
    # Envelope
    # -------------------------------------------------------------------------

    def _headers(self, request: ApiRequest) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": self._settings.cors_allow_origin,
            "Access-Control-Allow-Headers": "Content-Type,Authorization",
            "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
            "X-Correlation-Id": str(request.correlation_id),
        }

    def _respond(self, request: ApiRequest, status_code: int, body: Any) -> ApiResponse:
        return ApiResponse(status_code=status_code, body=body, headers=self._headers(request))

    def _fail(
        self,
        request: ApiRequest,
        path: str,
        status_code: int,
        message: str,
        error: Exception,
        claims: Optional[TokenClaims],
    ) -> ApiResponse:
        self._components.audit_logger.log_request_failed(
            method=request.method,
            path=path,
            status_code=status_code,
            error=error,
            user_id=claims.subject if claims else None,
            correlation_id=request.correlation_id,
        )
        return self._respond(request, status_code, {"success": False, "error": message})

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def normalize_path(self, request: ApiRequest) -> str:
        """
        Reduce a raw request path to the form route templates use.

        /dev/spending/entries/abc/?date=x -> /spending/entries/abc
        """
        proxy = (request.path_parameters or {}).get("proxy")
        path = f"/{proxy}" if proxy else (request.path or "/")
        path = path.split("?", 1)[0]
        if not path.startswith("/"):
            path = "/" + path

        for stage in self._settings.stage_prefix_list:
            prefix = f"/{stage}"
            if path == prefix or path.startswith(prefix + "/"):
                path = path[len(prefix):] or "/"
                break

        if len(path) > 1:
            path = path.rstrip("/") or "/"
        return path

    def _match(self, method: str, path: str) -> tuple[Route, dict[str, str]]:
        for route in self._routes:
            params = route.match(method, path)
            if params is not None:
                return route, params
        raise NotFoundError("Not found")

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """Handle one request; never raises."""
        if request.method.upper() == "OPTIONS":
            return self._respond(request, 200, {})

        method = request.method.upper()
        path = self.normalize_path(request)
        claims = None
        try:
            if path not in self._public_paths:
                # First use downloads the signing keys; keep it off the loop
                claims = await asyncio.to_thread(
                    self._components.verifier.verify_request,
                    request.headers,
                    correlation_id=request.correlation_id,
                )
            route, params = self._match(method, path)
            data = await route.handler(RouteContext(request=request, claims=claims, params=params))
        except MindMoneyError as e:
            return self._fail(request, path, e.status_code, e.message, e, claims)
        except Exception as e:
            logger.exception(
                "unhandled_request_error",
                method=method,
                path=path,
                correlation_id=str(request.correlation_id),
            )
            return self._fail(request, path, 500, "Internal server error", e, claims)

        return self._respond(request, 200, {"success": True, "data": to_payload(data)})

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _health(self, ctx: RouteContext) -> dict:
        return {"status": "healthy"}

    async def _submit_quiz(self, ctx: RouteContext):
        submission = parse_body(QuizSubmission, ctx.request.body)
        return await self._components.quiz.submit(
            ctx.claims, submission, correlation_id=ctx.request.correlation_id
        )

    async def _get_quiz_analysis(self, ctx: RouteContext):
        return await self._components.quiz.get_analysis(
            ctx.claims, ctx.params["userId"], correlation_id=ctx.request.correlation_id
        )

    async def _add_entry(self, ctx: RouteContext):
        entry = parse_body(SpendingEntryInput, ctx.request.body)
        return await self._components.spending.add_entry(
            ctx.claims, entry, correlation_id=ctx.request.correlation_id
        )

    async def _list_entries(self, ctx: RouteContext):
        on_date = parse_date_param(ctx.request.query)
        return await self._components.spending.list_entries(
            ctx.claims,
            user_id=ctx.params.get("userId"),
            on_date=on_date,
            correlation_id=ctx.request.correlation_id,
        )

    async def _get_entry(self, ctx: RouteContext):
        return await self._components.spending.get_entry(
            ctx.claims, ctx.params["id"], correlation_id=ctx.request.correlation_id
        )

    async def _update_entry(self, ctx: RouteContext):
        entry = parse_body(SpendingEntryInput, ctx.request.body)
        return await self._components.spending.update_entry(
            ctx.claims, ctx.params["id"], entry, correlation_id=ctx.request.correlation_id
        )

    async def _delete_entry(self, ctx: RouteContext) -> None:
        await self._components.spending.delete_entry(
            ctx.claims, ctx.params["id"], correlation_id=ctx.request.correlation_id
        )

    async def _set_goal(self, ctx: RouteContext):
        goal = parse_body(SavingsGoalInput, ctx.request.body)
        return await self._components.savings.set_goal(
            ctx.claims, goal, correlation_id=ctx.request.correlation_id
        )

    async def _get_goal(self, ctx: RouteContext):
        return await self._components.savings.get_goal(
            ctx.claims, ctx.params["userId"], correlation_id=ctx.request.correlation_id
        )

    async def _daily_analysis(self, ctx: RouteContext):
        on_date = parse_date_param(ctx.request.query)
        return await self._components.analysis.daily(
            ctx.claims,
            ctx.params["userId"],
            on_date=on_date,
            correlation_id=ctx.request.correlation_id,
        )

    async def _post_chat(self, ctx: RouteContext):
        chat = parse_body(ChatMessageInput, ctx.request.body)
        return await self._components.chat.post_message(
            ctx.claims, chat, correlation_id=ctx.request.correlation_id
        )

    async def _chat_history(self, ctx: RouteContext):
        return await self._components.chat.history(
            ctx.claims, ctx.params["userId"], correlation_id=ctx.request.correlation_id
        )

    async def _test_db(self, ctx: RouteContext) -> dict:
        return await self._components.diagnostics.database()

    async def _test_gemini(self, ctx: RouteContext) -> dict:
        return await self._components.diagnostics.generation()

    async def _test_schema(self, ctx: RouteContext) -> dict:
        return await self._components.diagnostics.schema()

    async def _debug(self, ctx: RouteContext) -> dict:
        return {
            "message": "Debug endpoint working",
            "path": self.normalize_path(ctx.request),
            "originalPath": ctx.request.path,
            "services": validate_all_settings(),
        }
