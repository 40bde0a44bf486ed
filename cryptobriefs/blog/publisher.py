"""HTTP client for the Crypto Briefs publishing API."""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from cryptobriefs.config import Config


class PublishError(RuntimeError):
    """Raised when the publishing API rejects or fails a request."""


class BlogPublisher:
    def __init__(self, base_api_url: str, *, timeout: float = 20.0, session: Optional[requests.Session] = None):
        if base_api_url and not base_api_url.endswith("/"):
            base_api_url += "/"
        self.base_api_url = base_api_url
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: Config) -> "BlogPublisher":
        return cls(config.base_api_url, timeout=config.publish_timeout)

    def _post(self, path: str, payload: Dict[str, Any]) -> Any:
        url = f"{self.base_api_url}{path}"
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise PublishError(f"POST {path} failed: {e}") from e
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise PublishError(f"POST {path} returned non-JSON body") from e

    def upload_image(self, image_base64: str) -> str:
        data = self._post("api/upload", {"base64": image_base64})
        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise PublishError("api/upload response has no url")
        return url

    def publish_post(self, *, title: str, content: str, blog: str, tag: str, image_url: str = "") -> Any:
        return self._post(
            "api/blog",
            {
                "title": title,
                "content": content,
                "blog": blog,
                "tag": tag,
                "imageUrl": image_url,
            },
        )

    def request_brief_summary(self) -> Any:
        """Ask the API to rebuild its market brief summary."""
        return self._post("api/briefs/addSummary", {})
