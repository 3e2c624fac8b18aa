"""HTTP client for the external policy service that owns limit combinations."""

import time
from collections.abc import AsyncGenerator, Mapping
from typing import Any, Final

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..config import settings
from ..constants import DEFAULT_PAGE_SIZE
from ..domain.entities import (
    CombinationPage,
    LimitCombination,
    LimitCombinationPayload,
)
from ..domain.exceptions import (
    CombinationNotFoundError,
    PolicyServiceError,
    PolicyServiceUnavailableError,
)
from ..logging_config import get_logger
from ..logging_utils import log_upstream_call
from ..metrics import upstream_request_duration, upstream_request_errors

logger: Final = get_logger(__name__)

UNAVAILABLE_MESSAGE: Final = "Pricing service unavailable"


def combinations_path(contract_id: int, combination_id: int | None = None) -> str:
    path = f"/api/policy/v1/{contract_id}/limits/combinations"
    if combination_id is not None:
        path += f"/{combination_id}"
    return path


class PolicyServiceClient:
    """Thin async wrapper over the policy service's combination endpoints.

    One request per call, no retries and no caching. Transport failures and
    5xx answers raise ``PolicyServiceUnavailableError``; 404 raises
    ``CombinationNotFoundError``; any other non-2xx raises
    ``PolicyServiceError`` carrying the upstream status and body.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = settings.policy_service_timeout,
        transport: httpx.AsyncBaseTransport | None = None,
        fetch_size: int = settings.combination_fetch_size,
    ):
        self.fetch_size = fetch_size
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"accept": "application/json"},
        )

    @classmethod
    def from_settings(cls) -> "PolicyServiceClient":
        return cls(
            base_url=settings.policy_service_url,
            timeout=settings.policy_service_timeout,
            fetch_size=settings.combination_fetch_size,
        )

    async def __aenter__(self) -> "PolicyServiceClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method, path, params=params, json=json
            )
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            log_upstream_call(method, path, None, duration_ms, error=str(e))
            upstream_request_errors.add(1, {"method": method, "reason": "transport"})
            raise PolicyServiceUnavailableError(UNAVAILABLE_MESSAGE) from e

        duration_ms = (time.perf_counter() - start) * 1000
        upstream_request_duration.record(
            duration_ms / 1000, {"method": method, "status": response.status_code}
        )
        log_upstream_call(method, path, response.status_code, duration_ms)

        if response.is_success:
            return response

        upstream_request_errors.add(
            1, {"method": method, "reason": str(response.status_code)}
        )
        body = _safe_body(response)
        if response.status_code >= 500:
            raise PolicyServiceUnavailableError(
                UNAVAILABLE_MESSAGE, status_code=response.status_code, body=body
            )
        if response.status_code == 404:
            raise CombinationNotFoundError(
                "Combination not found in the policy service"
            )
        raise PolicyServiceError(
            f"Policy service rejected {method} {path}",
            status_code=response.status_code,
            body=body,
        )

    async def list_combinations(
        self,
        contract_id: int,
        page: int = 0,
        size: int = DEFAULT_PAGE_SIZE,
        params: Mapping[str, Any] | None = None,
    ) -> CombinationPage:
        """Fetch one page of combinations; extra params are forwarded as-is."""
        query: dict[str, Any] = {"page": page, "size": size}
        for key, value in (params or {}).items():
            if key not in query and value not in (None, ""):
                query[key] = value

        response = await self._request(
            "GET", combinations_path(contract_id), params=query
        )
        return _parse(CombinationPage, response)

    async def fetch_all_combinations(self, contract_id: int) -> list[LimitCombination]:
        """Fetch up to ``fetch_size`` combinations in a single request."""
        page = await self.list_combinations(contract_id, page=0, size=self.fetch_size)
        if page.total_elements > len(page.content):
            logger.warning(
                "Contract has more combinations than one fetch returns",
                contract_id=contract_id,
                total_elements=page.total_elements,
                fetched=len(page.content),
            )
        return page.content

    async def get_combination(
        self, contract_id: int, combination_id: int
    ) -> LimitCombination:
        response = await self._request(
            "GET", combinations_path(contract_id, combination_id)
        )
        return _parse(LimitCombination, response)

    async def create_combination(
        self, contract_id: int, payload: LimitCombinationPayload
    ) -> LimitCombination:
        response = await self._request(
            "POST", combinations_path(contract_id), json=payload.to_wire()
        )
        return _parse(LimitCombination, response)

    async def update_combination(
        self, contract_id: int, combination_id: int, payload: LimitCombinationPayload
    ) -> LimitCombination:
        response = await self._request(
            "PUT",
            combinations_path(contract_id, combination_id),
            json=payload.to_wire(),
        )
        return _parse(LimitCombination, response)

    async def delete_combination(self, contract_id: int, combination_id: int) -> None:
        await self._request("DELETE", combinations_path(contract_id, combination_id))


def _safe_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _parse(model, response: httpx.Response):
    try:
        return model.model_validate(response.json())
    except (ValueError, PydanticValidationError) as e:
        logger.error(
            "Malformed response from policy service",
            url=str(response.request.url),
            error=str(e),
        )
        raise PolicyServiceError(
            "Policy service returned an unexpected response",
            status_code=response.status_code,
        ) from e


async def get_policy_client() -> AsyncGenerator[PolicyServiceClient, None]:
    """FastAPI dependency yielding a client bound to the configured backend."""
    async with PolicyServiceClient.from_settings() as client:
        yield client
