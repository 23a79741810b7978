import asyncio
from typing import Any

import httpx

RETRYABLE_STATUS_CODES = frozenset({502, 503, 504})


def _response_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        payload = {"detail": response.text}
    if isinstance(payload, dict):
        return payload
    return {"items": payload} if isinstance(payload, list) else {"detail": payload}


async def get_with_retry(
    *,
    url: str,
    timeout_seconds: float,
    max_retries: int = 2,
    backoff_seconds: float = 0.2,
    retry_status_codes: frozenset[int] = RETRYABLE_STATUS_CODES,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[int, dict[str, Any]]:
    for attempt in range(max_retries + 1):
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.get(url, params=params, headers=headers)
        except (httpx.TimeoutException, httpx.NetworkError) as exc:
            if attempt >= max_retries:
                return 503, {"detail": f"upstream communication failure: {exc.__class__.__name__}"}
            await asyncio.sleep(backoff_seconds * (2**attempt))
            continue

        if response.status_code in retry_status_codes and attempt < max_retries:
            await asyncio.sleep(backoff_seconds * (2**attempt))
            continue
        return response.status_code, _response_payload(response)

    return 503, {"detail": "upstream communication failure: exhausted retries"}
