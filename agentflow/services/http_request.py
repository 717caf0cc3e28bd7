"""
HTTP request execution for apiCall nodes
"""
import logging
from dataclasses import dataclass
from typing import Optional, Any, Dict

import httpx

logger = logging.getLogger(__name__)

MAX_RESPONSE_CHARS = 10000


@dataclass
class HttpCallResult:
    """Outcome of an apiCall request"""
    success: bool
    status_code: Optional[int] = None
    text: str = ""
    error: Optional[str] = None
    attempts: int = 0


async def execute_http_request(
    url: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    body: Optional[Any] = None,
    timeout_seconds: float = 10.0,
    retry_attempts: int = 0,
    client: Optional[httpx.AsyncClient] = None
) -> HttpCallResult:
    """
    Send one HTTP request, retrying transport failures.

    HTTP error statuses are not retried; they come back with success=False.
    """
    result = HttpCallResult(success=False)
    method = (method or "GET").upper()
    send_body = body is not None and method not in ("GET", "DELETE")

    owns_client = client is None
    http = client or httpx.AsyncClient()

    try:
        for attempt in range(max(retry_attempts, 0) + 1):
            result.attempts = attempt + 1
            try:
                kwargs: Dict[str, Any] = {"headers": headers or {}, "timeout": timeout_seconds}
                if send_body:
                    if isinstance(body, (dict, list)):
                        kwargs["json"] = body
                    else:
                        kwargs["content"] = str(body)

                response = await http.request(method, url, **kwargs)

                result.status_code = response.status_code
                result.text = response.text[:MAX_RESPONSE_CHARS]
                result.success = response.status_code < 400
                result.error = None if result.success else f"HTTP {response.status_code}"

                logger.info(f"apiCall {method} {url} - Status: {response.status_code}")
                return result

            except httpx.HTTPError as e:
                logger.warning(f"apiCall {method} {url} failed on attempt {attempt + 1}: {e}")
                result.error = str(e) or e.__class__.__name__
    finally:
        if owns_client:
            await http.aclose()

    return result
