"""httpx adapter for the discussion REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from threadcache.config import transport as transport_cfg
from threadcache.errors import NotFoundError, TransportError, ValidationError
from threadcache.models import Comment, Page, Post, PostFilter, UpvoteResult

from .base import Transport

logger = logging.getLogger(__name__)


class HttpTransport(Transport):
    """
    Talk to the API over HTTP.

    Responses use the ``{success, message, data, pagination}`` envelope. Errors
    use ``{success: false, error, isFormError}``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        prefix: str | None = None,
        client: httpx.AsyncClient | None = None,
        cookies: dict[str, str] | None = None,
    ) -> None:
        self._prefix = (prefix if prefix is not None else transport_cfg.API_PREFIX).rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=base_url or transport_cfg.API_BASE_URL,
            cookies=cookies,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------ #
    # Posts
    # ------------------------------------------------------------------ #

    async def fetch_posts(self, post_filter: PostFilter, page: int, page_size: int) -> Page[Post]:
        params = {
            "page": page,
            "limit": page_size,
            "sortBy": post_filter.sort,
            "order": post_filter.order,
        }
        if post_filter.author:
            params["author"] = post_filter.author
        if post_filter.site:
            params["site"] = post_filter.site
        body = await self._request("GET", "/posts", params=params)
        return _page(body, Post.from_api)

    async def fetch_post(self, post_id: int) -> Post:
        body = await self._request("GET", f"/posts/{post_id}")
        return Post.from_api(body["data"])

    async def upvote_post(self, post_id: int) -> UpvoteResult:
        body = await self._request("POST", f"/posts/{post_id}/upvote")
        data = body["data"]
        return UpvoteResult(points=int(data["count"]), is_upvoted=bool(data["isUpvoted"]))

    # ------------------------------------------------------------------ #
    # Comments
    # ------------------------------------------------------------------ #

    async def fetch_comments(
        self,
        post_id: int,
        page: int,
        page_size: int,
        sort: str,
        order: str,
        include_children: bool = True,
    ) -> Page[Comment]:
        params = {
            "page": page,
            "limit": page_size,
            "sortBy": sort,
            "order": order,
            "includeChildren": "true" if include_children else "false",
        }
        body = await self._request("GET", f"/posts/{post_id}/comments", params=params)
        return _page(body, Comment.from_api)

    async def fetch_replies(self, comment_id: int, page: int, page_size: int) -> Page[Comment]:
        params = {"page": page, "limit": page_size}
        body = await self._request("GET", f"/comments/{comment_id}/comments", params=params)
        return _page(body, Comment.from_api)

    async def create_comment(self, parent_id: int, content: str, is_parent_comment: bool) -> Comment:
        path = f"/comments/{parent_id}" if is_parent_comment else f"/posts/{parent_id}/comment"
        body = await self._request("POST", path, data={"content": content})
        return Comment.from_api(body["data"])

    async def upvote_comment(self, comment_id: int) -> UpvoteResult:
        body = await self._request("POST", f"/comments/{comment_id}/upvote")
        data = body["data"]
        # The comment route reports the edge list rather than a flag.
        upvotes = data.get("commentUpvotes")
        is_upvoted = bool(upvotes) if upvotes is not None else bool(data.get("isUpvoted"))
        return UpvoteResult(points=int(data["count"]), is_upvoted=is_upvoted)

    # ------------------------------------------------------------------ #
    # Plumbing
    # ------------------------------------------------------------------ #

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._prefix}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise TransportError(str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code == 404:
            raise NotFoundError(body.get("error") or f"{url} not found")
        if response.is_error or not body.get("success", False):
            message = body.get("error") or f"{method} {url} returned {response.status_code}"
            if body.get("isFormError"):
                raise ValidationError(message)
            raise TransportError(message)
        return body


def _page(body: dict[str, Any], parse) -> Page:
    pagination = body.get("pagination") or {}
    return Page(
        items=[parse(raw) for raw in body.get("data") or []],
        page=int(pagination.get("page", 1)),
        total_pages=int(pagination.get("totalPages", 0)),
    )


__all__ = ["HttpTransport"]
