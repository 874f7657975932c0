from __future__ import annotations

from typing import Any, Callable, Dict, Generator, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")


def paginate(
    fetch: Callable[[Optional[str]], Tuple[Sequence[T], Optional[str]]]
) -> Generator[T, None, None]:
    """
    Generic paginator yielding items from a fetch(token) function.
    The fetch function must return (items, next_token). AWS list calls signal
    the last page by omitting the token (or returning an empty string), which
    stops pagination.
    """
    token: Optional[str] = None
    while True:
        items, next_token = fetch(token)
        for it in items:
            yield it
        if not next_token:
            break
        token = next_token


def aws_pages(
    call: Callable[..., Dict[str, Any]],
    *,
    items_key: str,
    request_token: str = "NextToken",
    response_token: Optional[str] = None,
    **kwargs: Any,
) -> List[Any]:
    """
    Collect every item under items_key across all pages of a boto3 list call.
    The request and response token names differ for some services
    (RDS uses Marker for both).
    """
    resp_token = response_token or request_token

    def fetch(token: Optional[str]) -> Tuple[List[Any], Optional[str]]:
        params = dict(kwargs)
        if token:
            params[request_token] = token
        resp = call(**params) or {}
        return list(resp.get(items_key) or []), resp.get(resp_token)

    return list(paginate(fetch))
