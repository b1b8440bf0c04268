"""Feed API client.

A thin wrapper around the Feed HTTP API for scripts and integrations.
It uses the ``requests`` library internally and mirrors the server's
routes one method per operation:

* :meth:`login`: exchange an identifier and secret for a token.
* :meth:`list_posts`: fetch one page of posts.
* :meth:`iter_posts`: walk every page and yield each post.
* :meth:`get_post`: fetch a single post with its owner.
* :meth:`create_post`, :meth:`update_post`, :meth:`delete_post`: writes.

Every method returns a tuple ``(data, error)``.  On success ``error`` is
``None``; on failure ``data`` is ``None`` (or empty) and ``error`` is a
dictionary with ``status_code``, ``kind`` and ``message``.  After a
successful :meth:`login` the token is kept and sent on later calls.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

import requests


logger = logging.getLogger(__name__)

Error = Dict[str, Any]


class FeedClient:
    """Client for the Feed API.

    Args:
        base_url: Server root, e.g. ``http://localhost:8000``.
        token: Optional bearer token obtained earlier.
        session: Optional requests session.  If not supplied a session
            will be created automatically.
        api_prefix: Path prefix of the versioned API.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        api_prefix: str = "/api/v1",
        timeout: float = 15,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Low level HTTP helpers
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Optional[Any], Optional[Error]]:
        """Perform an HTTP request to the API.

        Returns:
            A tuple ``(data, error)``.  ``data`` contains the parsed JSON
            response on success (``None`` for empty bodies).
        """
        url = f"{self.base_url}{self.api_prefix}{path}"
        headers: Dict[str, str] = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            logger.debug("Sending %s request to %s", method, url)
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json_body,
                data=data,
                files=files,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            if response.content:
                return response.json(), None
            return None, None
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            kind = None
            message = ""
            if exc.response is not None:
                try:
                    err_json = exc.response.json()
                    kind = err_json.get("kind")
                    message = err_json.get("message") or str(err_json)
                except ValueError:
                    message = exc.response.text
            if not message:
                message = str(exc)
            logger.error("API request failed (%s): %s", status, message)
            return None, {"status_code": status, "kind": kind, "message": message}
        except requests.RequestException as exc:
            logger.error("API request failed: %s", exc)
            return None, {"status_code": None, "kind": None, "message": str(exc)}

    @staticmethod
    def _form(fields: Dict[str, Any], image: Optional[Tuple[str, bytes, str]]):
        if image is None:
            return None, None, fields
        return {k: str(v) for k, v in fields.items()}, {"image": image}, None

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------
    def login(self, identifier: str, secret: str) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        data, error = self._request("POST", "/auth/login", json_body={"identifier": identifier, "secret": secret})
        if error:
            return None, error
        self.token = data["token"]
        return data, None

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------
    def list_posts(self, page: int = 1, page_size: Optional[int] = None) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        params: Dict[str, Any] = {"page": page}
        if page_size is not None:
            params["pageSize"] = page_size
        return self._request("GET", "/posts", params=params)

    def iter_posts(self, page_size: int = 50) -> Iterator[Dict[str, Any]]:
        """Yield every post, page by page.

        Stops at the first empty page or failed request (the failure is
        logged).
        """
        page = 1
        while True:
            data, error = self.list_posts(page=page, page_size=page_size)
            if error or not data:
                return
            items: List[Dict[str, Any]] = data.get("items", [])
            if not items:
                return
            yield from items
            if page * page_size >= data.get("totalCount", 0):
                return
            page += 1

    def get_post(self, post_id: Any) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        return self._request("GET", f"/posts/{post_id}")

    def create_post(
        self,
        title: str,
        content: str,
        image: Optional[Tuple[str, bytes, str]] = None,
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        """Create a post.

        Args:
            image: Optional ``(filename, bytes, content_type)``; when given
                the post is sent as a multipart form.
        """
        data, files, json_body = self._form({"title": title, "content": content}, image)
        return self._request("POST", "/posts", json_body=json_body, data=data, files=files)

    def update_post(
        self,
        post_id: Any,
        title: str,
        content: str,
        image: Optional[Tuple[str, bytes, str]] = None,
    ) -> Tuple[Optional[Dict[str, Any]], Optional[Error]]:
        data, files, json_body = self._form({"title": title, "content": content}, image)
        return self._request("PUT", f"/posts/{post_id}", json_body=json_body, data=data, files=files)

    def delete_post(self, post_id: Any) -> Tuple[bool, Optional[Error]]:
        _, error = self._request("DELETE", f"/posts/{post_id}")
        return error is None, error
