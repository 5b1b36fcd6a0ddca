"""
Integration tests for the native media HTTP service and HttpTransport.
"""
import unittest
import asyncio
import io
import os
import tempfile
import shutil

import httpx
from PIL import Image

from mediacache.config import CacheSettings
from mediacache.errors import NativeMediaError
from mediacache.media_cache import MediaCache
from mediacache.mediastore import MediaStore
from mediacache.native import NativeMediaService
from mediacache.transport import HttpTransport
from native_app import app, get_store

from fakes import FakeProvider, make_media_tree


class TestNativeApp(unittest.TestCase):
    """Test the HTTP endpoints through an in-process ASGI client."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.root = tempfile.mkdtemp()
        make_media_tree(self.root)
        self.store = MediaStore(self.root)
        app.dependency_overrides[get_store] = lambda: self.store

        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
        self.transport = HttpTransport("http://test", client=self.client)

    def tearDown(self):
        """Clean up after tests."""
        self.run_async(self.client.aclose())
        app.dependency_overrides.clear()
        self.loop.close()
        shutil.rmtree(self.root, ignore_errors=True)

    def run_async(self, coro):
        """Helper to run async functions."""
        return self.loop.run_until_complete(coro)

    def test_root(self):
        response = self.run_async(self.client.get("/"))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "Native Media Service")

    def test_health(self):
        data = self.run_async(self.client.get("/api/health")).json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["photos"], 3)

    def test_health_degraded(self):
        """Test an unreadable root reports degraded rather than failing."""
        missing = MediaStore(os.path.join(self.root, "nope"))
        app.dependency_overrides[get_store] = lambda: missing

        response = self.run_async(self.client.get("/api/health"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "degraded")
        self.assertIsNone(response.json()["photos"])

    def test_metadata_endpoint(self):
        """Test the wire format uses camelCase keys."""
        response = self.run_async(self.client.post("/native/getPhotosMetadata", json={"limit": 2, "offset": 0}))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual([p["id"] for p in data["photos"]], [1, 3])
        self.assertTrue(data["hasMore"])
        self.assertIn("dateAdded", data["photos"][0])

    def test_metadata_validation(self):
        response = self.run_async(self.client.post("/native/getPhotosMetadata", json={"limit": 0}))
        self.assertEqual(response.status_code, 422)

    def test_transport_count(self):
        self.assertEqual(self.run_async(self.transport.invoke("getPhotosCount")), 3)

    def test_transport_thumbnail(self):
        data = self.run_async(self.transport.invoke("getPhotoThumbnail", {"photoId": 1, "size": 80}))
        img = Image.open(io.BytesIO(data))
        self.assertEqual(img.format, "JPEG")
        self.assertEqual(img.size, (80, 80))

    def test_transport_thumbnail_errors(self):
        """Test tagged errors survive the round trip."""
        with self.assertRaises(NativeMediaError) as ctx:
            self.run_async(self.transport.invoke("getPhotoThumbnail", {"photoId": 999}))
        self.assertEqual(ctx.exception.code, NativeMediaError.THUMBNAIL_ERROR)

        with self.assertRaises(NativeMediaError) as ctx:
            self.run_async(self.transport.invoke("getPhotoThumbnail", {"photoId": None}))
        self.assertEqual(ctx.exception.code, NativeMediaError.INVALID_ARGUMENT)

    def test_unknown_method(self):
        response = self.run_async(self.client.post("/native/deletePhoto", json={}))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], NativeMediaError.NOT_IMPLEMENTED)

        with self.assertRaises(NativeMediaError) as ctx:
            self.run_async(self.transport.invoke("deletePhoto"))
        self.assertEqual(ctx.exception.code, NativeMediaError.NOT_IMPLEMENTED)

    def test_media_cache_over_http(self):
        """Test a MediaCache using the service as its native fast path."""
        service = NativeMediaService(self.transport, page_delay=0)
        cache = MediaCache(FakeProvider(photos=2), native=service,
                           settings=CacheSettings(photo_page_size=2, native_page_size=2,
                                                  native_page_delay=0, warm_batch_delay=0))

        first = self.run_async(cache.load_photos())
        self.assertEqual([a.id for a in first], [1, 3])

        self.run_async(cache.wait_until_idle())

        self.assertEqual([a.id for a in cache.photos], [1, 3, 4])
        self.assertTrue(cache.photos_loaded)
        self.assertIsNotNone(cache.get_cached_native_thumbnail(1))


class TestHttpTransportFailures(unittest.TestCase):
    """Test transport-level failures map to NativeMediaError."""

    def setUp(self):
        """Set up test fixtures."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.clients = []

    def tearDown(self):
        """Clean up after tests."""
        for client in self.clients:
            self.run_async(client.aclose())
        self.loop.close()

    def run_async(self, coro):
        """Helper to run async functions."""
        return self.loop.run_until_complete(coro)

    def _transport(self, handler) -> HttpTransport:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://native")
        self.clients.append(client)
        return HttpTransport("http://native", client=client)

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with self.assertRaises(NativeMediaError) as ctx:
            self.run_async(self._transport(handler).invoke("getPhotosCount"))
        self.assertEqual(ctx.exception.code, NativeMediaError.TRANSPORT_ERROR)

    def test_non_json_error(self):
        def handler(request):
            return httpx.Response(502, text="bad gateway")

        with self.assertRaises(NativeMediaError) as ctx:
            self.run_async(self._transport(handler).invoke("getPhotosCount"))
        self.assertEqual(ctx.exception.code, NativeMediaError.TRANSPORT_ERROR)
        self.assertIn("502", ctx.exception.message)

    def test_empty_thumbnail(self):
        def handler(request):
            return httpx.Response(204)

        self.assertIsNone(self.run_async(self._transport(handler).invoke("getPhotoThumbnail", {"photoId": 1})))

    def test_request_shape(self):
        """Test calls are POSTs to /native/{method} with a JSON body."""
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = request.content
            return httpx.Response(200, json={"count": 9})

        self.assertEqual(self.run_async(self._transport(handler).invoke("getPhotosCount", {"x": 1})), 9)
        self.assertEqual(seen["method"], "POST")
        self.assertEqual(seen["path"], "/native/getPhotosCount")
        self.assertIn(b'"x"', seen["body"])

    def test_owned_client_is_closed(self):
        transport = HttpTransport("http://native")
        self.run_async(transport.close())
        self.assertTrue(transport._client.is_closed)


if __name__ == '__main__':
    unittest.main()
