"""
Concurrent submission of WAF requests.

Requests are independent of each other, so they are all started at once
(up to the concurrency limit) and awaited together. A failed request is
recorded in its outcome and does not stop the others.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from .changes import WafRequest
from .client import SucuriClient, WafApiError
from .utils import generate_request_id, set_request_id, setup_logging

logger = setup_logging("runner")


@dataclass
class RequestOutcome:
    """Result of one submitted request."""
    request: WafRequest
    ok: bool
    messages: List[str] = field(default_factory=list)
    output: Any = None
    error: Optional[str] = None


async def _submit_one(
    client: SucuriClient,
    request: WafRequest,
    semaphore: asyncio.Semaphore,
) -> RequestOutcome:
    # Runs in its own task, so the ID only tags this request's log lines
    set_request_id(generate_request_id())
    async with semaphore:
        try:
            response = await client.submit(request)
        except WafApiError as e:
            return RequestOutcome(request=request, ok=False, messages=e.messages, error=str(e))
    return RequestOutcome(
        request=request,
        ok=True,
        messages=response.messages,
        output=response.output,
    )


async def submit_all(
    client: SucuriClient,
    requests: Sequence[WafRequest],
    concurrency: int = 10,
) -> List[RequestOutcome]:
    """
    Submit every request and wait for all of them.

    Args:
        client: API client
        requests: Requests to submit
        concurrency: Maximum number of requests in flight

    Returns:
        One outcome per request, in the order given
    """
    if not requests:
        return []

    semaphore = asyncio.Semaphore(max(1, concurrency))
    logger.info(f"Submitting {len(requests)} request(s), concurrency={concurrency}")
    tasks = [
        asyncio.ensure_future(_submit_one(client, request, semaphore))
        for request in requests
    ]
    outcomes = await asyncio.gather(*tasks)

    succeeded, failed = summarize(outcomes)
    logger.info(f"Submission finished: succeeded={succeeded}, failed={failed}")
    return list(outcomes)


def summarize(outcomes: Sequence[RequestOutcome]) -> Tuple[int, int]:
    """Count succeeded and failed outcomes."""
    succeeded = sum(1 for outcome in outcomes if outcome.ok)
    return succeeded, len(outcomes) - succeeded
