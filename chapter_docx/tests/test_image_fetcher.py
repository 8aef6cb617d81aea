"""Test cases for image retrieval over HTTP and data URIs."""

import base64
import unittest
from unittest.mock import Mock

import requests

from chapter_docx.model.options import ConversionOptions
from chapter_docx.parser.image_fetcher import ImageFetcher, ImageFetchError
from chapter_docx.tests.fixtures import image_bytes


class ImageFetcherTest(unittest.TestCase):
    """Test status, content-type and transport failure handling."""

    def setUp(self):
        self.session = Mock(spec=requests.Session)
        self.session.headers = {}
        self.options = ConversionOptions(fetch_timeout=3.0, user_agent="TestAgent/1.0")
        self.fetcher = ImageFetcher(self.options, session=self.session)

    def _response(self, status=200, content_type="image/png", content=b"data"):
        response = Mock()
        response.status_code = status
        response.headers = {"Content-Type": content_type}
        response.content = content
        return response

    def test_user_agent_is_declared(self):
        self.assertEqual(self.session.headers["User-Agent"], "TestAgent/1.0")

    def test_successful_fetch(self):
        self.session.get.return_value = self._response(content_type="image/PNG; charset=binary")
        fetched = self.fetcher.fetch("https://example.com/a.png")
        self.assertEqual(fetched.data, b"data")
        self.assertEqual(fetched.content_type, "image/png")
        self.session.get.assert_called_once_with("https://example.com/a.png", timeout=3.0)
        self.session.get.return_value.close.assert_called_once()

    def test_non_2xx_status_fails(self):
        self.session.get.return_value = self._response(status=404)
        with self.assertRaises(ImageFetchError) as caught:
            self.fetcher.fetch("https://example.com/missing.png")
        self.assertEqual(caught.exception.reason, "HTTP 404")
        self.assertEqual(caught.exception.url, "https://example.com/missing.png")

    def test_non_image_content_type_fails(self):
        self.session.get.return_value = self._response(content_type="text/html")
        with self.assertRaises(ImageFetchError):
            self.fetcher.fetch("https://example.com/page")

    def test_timeout_fails_only_that_image(self):
        self.session.get.side_effect = requests.Timeout("slow")
        with self.assertRaises(ImageFetchError) as caught:
            self.fetcher.fetch("https://example.com/slow.png")
        self.assertIn("timed out", caught.exception.reason)

    def test_connection_error_fails(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ImageFetchError):
            self.fetcher.fetch("https://example.com/down.png")

    def test_data_uri_decodes_locally(self):
        payload = image_bytes(2, 2)
        uri = "data:image/png;base64," + base64.b64encode(payload).decode("ascii")
        fetched = self.fetcher.fetch(uri)
        self.assertEqual(fetched.data, payload)
        self.assertEqual(fetched.content_type, "image/png")
        self.session.get.assert_not_called()

    def test_non_image_data_uri_fails(self):
        with self.assertRaises(ImageFetchError):
            self.fetcher.fetch("data:text/plain;base64,aGVsbG8=")
        with self.assertRaises(ImageFetchError):
            self.fetcher.fetch("data:image/svg+xml,<svg/>")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
