"""Introspection documents: building them for a service and fetching them from one."""
from __future__ import annotations

import logging
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from riptide.contract import Contract
from riptide.errors import IntrospectionError
from riptide.meta_schema import load_contract

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class IntrospectionResponse(BaseModel):
    """The `{"schema": ..., "serviceVersion": ...}` document a service serves about itself."""

    model_config = ConfigDict(populate_by_name=True)

    contract_document: dict[str, Any] = Field(alias="schema")
    service_version: str = Field(alias="serviceVersion")

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def contract(self) -> Contract:
        """Validate and return the embedded contract."""
        return load_contract(self.contract_document)


def build_introspection_response(contract: Contract, service_version: str) -> IntrospectionResponse:
    return IntrospectionResponse(schema=contract.to_document(), serviceVersion=service_version)


def fetch_remote_schema(
    url: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> IntrospectionResponse:
    """
    GET an introspection document from a running service.

    Raises:
        IntrospectionError: on transport failures, non-2xx answers, or a body
            that is not an introspection document.
    """
    http = session or requests.Session()
    logger.info("fetching remote schema from %s", url)
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except requests.RequestException as exc:
        raise IntrospectionError(f"Failed to fetch remote schema from {url}: {exc}") from exc
    except ValueError as exc:
        raise IntrospectionError(f"Remote schema at {url} is not valid JSON.") from exc
    finally:
        if session is None:
            http.close()

    try:
        return IntrospectionResponse.model_validate(payload)
    except ValidationError as exc:
        raise IntrospectionError(
            f"Remote schema at {url} is not an introspection response: {exc.errors()[0]['msg']}"
        ) from exc
