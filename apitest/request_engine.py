from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from apitest.config_loader import DEFAULT_TIMEOUT_SECONDS, ContentType
from apitest.errors import TransportError
from apitest.values import render


logger = logging.getLogger(__name__)

JSON_MIME = "application/json"
FORM_MIME = "application/x-www-form-urlencoded"


@dataclass
class RequestResult:
    method: str
    url: str
    status_code: int
    body: bytes
    latency_ms: float
    headers: CaseInsensitiveDict = field(default_factory=CaseInsensitiveDict)

    @property
    def content_type(self) -> str:
        return self.headers.get("Content-Type", "")

    @property
    def duration_seconds(self) -> float:
        return self.latency_ms / 1000

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class RequestEngine:
    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Mapping[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
        content_type: ContentType = ContentType.JSON,
    ) -> RequestResult:
        method = method.upper()
        request_headers: Dict[str, str] = dict(headers or {})
        request_kwargs: Dict[str, Any] = {}

        if body:
            if content_type is ContentType.FORM:
                request_headers["Content-Type"] = FORM_MIME
                request_kwargs["data"] = {key: render(value) for key, value in body.items()}
            else:
                request_headers["Content-Type"] = JSON_MIME
                request_kwargs["json"] = body

        logger.debug("%s %s headers=%s body=%s", method, url, request_headers, body)
        started = time.perf_counter()
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=request_headers,
                timeout=self.timeout_seconds,
                allow_redirects=False,
                **request_kwargs,
            )
            content = response.content
        except requests.RequestException as exc:
            latency_ms = (time.perf_counter() - started) * 1000
            logger.debug("%s %s failed after %.1fms: %s", method, url, latency_ms, exc)
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        latency_ms = (time.perf_counter() - started) * 1000
        return RequestResult(
            method=method,
            url=url,
            status_code=response.status_code,
            body=content,
            latency_ms=latency_ms,
            headers=CaseInsensitiveDict(response.headers),
        )

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "RequestEngine":
        return self

    def __exit__(self, *_exc_info: object) -> None:
        self.close()
