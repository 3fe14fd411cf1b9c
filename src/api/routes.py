import json
import logging
from typing import Mapping

import httpx
from fastapi import APIRouter, HTTPException, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.api.models import (
    ChatMessage,
    FunctionCallRequest,
    HealthResponse,
    ProxyResponse,
    UpstreamChatRequest,
    utc_timestamp,
)
from src.core.functions import FunctionRoute, get_function_routes
from src.services.upstream import (
    ChatCompletion,
    InvalidResponseFormat,
    UpstreamClient,
    parse_chat_completion,
    split_upstream_url,
)

logger = logging.getLogger(__name__)
router = APIRouter()

ASSISTANT_PATH = "/api/assistant"


def envelope(status_code: int, body: ProxyResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten pydantic errors into a single line, e.g. 'function_name: Field required'"""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def get_upstream_client(request: Request) -> UpstreamClient:
    """Get the shared upstream client from app state"""
    try:
        return request.app.state.upstream_client
    except AttributeError as e:
        logger.error(f"Error getting upstream client: {e}")
        raise HTTPException(status_code=500, detail="Upstream client not initialized")


##
#  Routes
##


@router.get("/")
async def health_check():
    return HealthResponse(
        status="Avatar API Proxy is running", endpoints=[ASSISTANT_PATH]
    )


@router.post(ASSISTANT_PATH)
async def call_function(
    request: Request,
    routes: Mapping[str, FunctionRoute] = Depends(get_function_routes),
    upstream: UpstreamClient = Depends(get_upstream_client),
):
    """Forward an assistant function call to its chat-completion upstream"""
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body)
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")
        call = FunctionCallRequest.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Parse Error: {e}")
        return envelope(
            400,
            ProxyResponse(
                error=f"Request parsing failed: {describe_validation_error(e)}",
                success=False,
            ),
        )
    except ValueError as e:
        logger.error(f"Parse Error: {e}")
        return envelope(
            400, ProxyResponse(error=f"Request parsing failed: {e}", success=False)
        )

    logger.info(f"Function called: {call.function_name}")
    logger.info(f"Arguments: {call.arguments}")

    route = routes.get(call.function_name)
    if route is None:
        logger.warning(f"Unknown function requested: {call.function_name}")
        return envelope(
            400,
            ProxyResponse(
                error=f"Unknown function: {call.function_name}", success=False
            ),
        )

    if not isinstance(call.arguments, dict):
        logger.error(f"Parse Error: arguments is {type(call.arguments).__name__}")
        return envelope(
            400,
            ProxyResponse(
                error="Request parsing failed: arguments must be a JSON object",
                success=False,
            ),
        )

    question = call.arguments.get(route.argument_key)
    if not isinstance(question, str) or not question.strip():
        return envelope(
            400,
            ProxyResponse(
                error=f"Missing required argument: {route.argument_key}",
                success=False,
            ),
        )

    chat_request = UpstreamChatRequest(
        model=route.model, messages=[ChatMessage(content=question)]
    )
    host, port, path = split_upstream_url(route.upstream_url)

    try:
        body = await upstream.make_request(
            host, path, port=port, method="POST", body=chat_request.model_dump_json()
        )
        completion = parse_chat_completion(body)
        if not isinstance(completion, ChatCompletion):
            raise InvalidResponseFormat(completion.raw)
    except (httpx.HTTPError, InvalidResponseFormat) as e:
        logger.error(f"API Error: {e!r}")
        return envelope(
            500,
            ProxyResponse(
                error=f"API request failed: {str(e) or type(e).__name__}",
                function_name=call.function_name,
                success=False,
            ),
        )

    return envelope(
        200,
        ProxyResponse(
            result=completion.content,
            function_name=call.function_name,
            success=True,
            timestamp=utc_timestamp(),
        ),
    )
