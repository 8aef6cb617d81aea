"""Blocking retrieval of image bytes referenced from chapter markup."""
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

import requests

from chapter_docx.model.options import ConversionOptions
from chapter_docx.utils.logger import get_logger

LOGGER = get_logger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*),(?P<payload>.*)$", re.DOTALL)


class ImageFetchError(Exception):
    """Raised when an image cannot be obtained; fatal for that image only."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(reason)
        self.url = url
        self.reason = reason


@dataclass(frozen=True, slots=True)
class FetchedImage:
    """Raw payload as delivered by the source."""

    url: str
    data: bytes
    content_type: str


class ImageFetcher:
    """Fetch images over HTTP(S) with a declared user agent, or decode ``data:`` URIs."""

    def __init__(self, options: Optional[ConversionOptions] = None, session: Optional[requests.Session] = None) -> None:
        self._options = options or ConversionOptions()
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": self._options.user_agent})

    def fetch(self, url: str) -> FetchedImage:
        if url.startswith("data:"):
            return self._decode_data_uri(url)

        LOGGER.info("Downloading image: %s", url)
        try:
            response = self._session.get(url, timeout=self._options.fetch_timeout)
        except requests.Timeout as exc:
            raise ImageFetchError(url, f"timed out after {self._options.fetch_timeout}s") from exc
        except requests.RequestException as exc:
            raise ImageFetchError(url, f"request failed: {exc}") from exc

        try:
            if not 200 <= response.status_code < 300:
                raise ImageFetchError(url, f"HTTP {response.status_code}")
            content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip().lower()
            if not content_type.startswith("image/"):
                raise ImageFetchError(url, f"not an image: {content_type or 'no content-type'}")
            return FetchedImage(url=url, data=response.content, content_type=content_type)
        finally:
            response.close()

    def close(self) -> None:
        self._session.close()

    @staticmethod
    def _decode_data_uri(url: str) -> FetchedImage:
        match = DATA_URI_PATTERN.match(url)
        if not match:
            raise ImageFetchError(url[:64], "malformed data URI")
        content_type = (match.group("mime") or "").lower()
        if not content_type.startswith("image/"):
            raise ImageFetchError(url[:64], f"not an image: {content_type or 'no content-type'}")
        if ";base64" not in match.group("params").lower():
            raise ImageFetchError(url[:64], "only base64 data URIs are supported")
        try:
            data = base64.b64decode(match.group("payload"), validate=False)
        except (binascii.Error, ValueError) as exc:
            raise ImageFetchError(url[:64], f"undecodable data URI: {exc}") from exc
        return FetchedImage(url=url, data=data, content_type=content_type)
