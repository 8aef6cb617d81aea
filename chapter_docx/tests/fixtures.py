"""Shared builders for tests: in-memory images and a scripted image fetcher."""
from __future__ import annotations

from io import BytesIO
from typing import Dict, Union
from unittest.mock import Mock

from PIL import Image

from chapter_docx.parser.image_fetcher import FetchedImage, ImageFetcher, ImageFetchError


def image_bytes(width: int, height: int, fmt: str = "PNG", color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def scripted_fetcher(responses: Dict[str, Union[bytes, str]]) -> Mock:
    """Fetcher mock: bytes entries succeed as PNG payloads, strings fail with that reason."""
    fetcher = Mock(spec=ImageFetcher)

    def fetch(url: str) -> FetchedImage:
        outcome = responses.get(url, "HTTP 404")
        if isinstance(outcome, str):
            raise ImageFetchError(url, outcome)
        return FetchedImage(url=url, data=outcome, content_type="image/png")

    fetcher.fetch.side_effect = fetch
    return fetcher
