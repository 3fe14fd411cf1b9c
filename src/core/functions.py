# core/functions.py
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from src.core.config import Settings, get_settings


@dataclass(frozen=True)
class FunctionRoute:
    """Where a function call is forwarded and which argument carries the question."""

    upstream_url: str
    model: str
    argument_key: str


def build_function_routes(settings: Settings) -> Mapping[str, FunctionRoute]:
    """Build the read-only function table for the given settings."""
    return MappingProxyType(
        {
            "get_kazakhstan_law_info": FunctionRoute(
                upstream_url=settings.UPSTREAM_URL,
                model="qazaq_law_langchain_openai_local",
                argument_key="user_question",
            ),
            "get_egov_service_info": FunctionRoute(
                upstream_url=settings.UPSTREAM_URL,
                model="eGov_v3_Ollama",
                argument_key="service_question",
            ),
        }
    )


@lru_cache()
def get_function_routes() -> Mapping[str, FunctionRoute]:
    return build_function_routes(get_settings())

