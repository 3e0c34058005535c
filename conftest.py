"""
Shared fixtures for the card issuance tests
Synthesises photos and PDFs and fakes the editor and signing services
"""

import io
import json
import os
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from PIL import Image
from reportlab.pdfgen import canvas

# Add the project root to sys.path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from app.core.encoding import encode_base64, to_data_uri
from app.services.card_encoder import CardEncoder, KeyStore
from app.services.card_issuer import CardIssuer
from app.services.document_merger import load_signature_page
from app.services.editor_client import EditorClient
from app.services.signing_client import SigningClient

EDITOR_URL = "http://editor.test/api/v1/generate"
SIGN_URL = "http://keymanager.test/v1/keymanager/pdf/sign"


def make_photo(format: str = "JPEG", size: Tuple[int, int] = (300, 400), mode: str = "RGB") -> bytes:
    """Generate a gradient test photo in the requested format"""
    image = Image.new(mode, size)
    pixels = image.load()
    for x in range(size[0]):
        for y in range(size[1]):
            value = (x * 255 // size[0], y * 255 // size[1], 128)
            if mode == "RGBA":
                value = value + (255,)
            elif mode == "L":
                value = value[0]
            pixels[x, y] = value
    buffer = io.BytesIO()
    image.save(buffer, format=format)
    return buffer.getvalue()


def make_pdf(pages: int) -> bytes:
    """Generate a card-sized PDF with the given number of pages"""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=(242.6, 153.0))
    for page in range(pages):
        c.drawString(10, 10, f"Card page {page + 1}")
        c.showPage()
    c.save()
    return buffer.getvalue()


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status_code: int = 200, json_data: Any = None, text: Optional[str] = None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else (json.dumps(json_data) if json_data is not None else "")

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json


class FakeSession:
    """Records POST calls and answers with a fixed response, a responder or an exception"""

    def __init__(self, response: Any = None, responder: Optional[Callable[[str, Dict[str, Any]], FakeResponse]] = None):
        self.response = response
        self.responder = responder
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if isinstance(self.response, Exception):
            raise self.response
        if self.responder is not None:
            return self.responder(url, kwargs)
        return self.response


def editor_response(pdf_bytes: bytes) -> FakeResponse:
    return FakeResponse(200, {"files": {"pdf": to_data_uri("application/pdf", pdf_bytes)}})


def echo_signature(url: str, kwargs: Dict[str, Any]) -> FakeResponse:
    """Signing service that returns the submitted document as the signed one"""
    body = json.loads(kwargs["data"])
    return FakeResponse(200, {
        "id": body.get("id"),
        "version": body.get("version"),
        "responsetime": body["requesttime"],
        "response": {"data": body["request"]["data"], "timestamp": body["request"]["timeStamp"]},
        "errors": None,
    })


@pytest.fixture(scope="session")
def key_store() -> KeyStore:
    return KeyStore.generate("test", key_password="key-secret")


@pytest.fixture
def encoder(key_store) -> CardEncoder:
    return CardEncoder(key_store, ["UIN", "fullName", "gender"])


@pytest.fixture(scope="session")
def jpeg_photo() -> bytes:
    return make_photo("JPEG")


@pytest.fixture(scope="session")
def jp2_photo() -> bytes:
    return make_photo("JPEG2000")


@pytest.fixture
def photo_data_uri(jp2_photo) -> str:
    return "data:image/x-jp2;base64," + encode_base64(jp2_photo)


@pytest.fixture
def credential_subject() -> Dict[str, Any]:
    return {
        "id": "https://credential.test/4218452092",
        "UIN": "4218452092",
        "fullName": [{"language": "eng", "value": "Marion Florence Dupont"}],
        "gender": [{"language": "eng", "value": "Female"}],
        "dateOfBirth": "1985/01/01",
        "email": "marion.dupont@example.org",
        "phone": "9876543210",
    }


@pytest.fixture(scope="session")
def signature_page() -> bytes:
    return load_signature_page()


@pytest.fixture
def editor_session() -> FakeSession:
    return FakeSession(editor_response(make_pdf(2)))


@pytest.fixture
def signing_session() -> FakeSession:
    return FakeSession(responder=echo_signature)


@pytest.fixture
def card_issuer(encoder, signature_page, editor_session, signing_session) -> CardIssuer:
    editor_client = EditorClient(EDITOR_URL, expire_years=5, session=editor_session)
    signing_client = SigningClient(SIGN_URL, reason="Identity card issuance", session=signing_session)
    return CardIssuer(encoder, signature_page, editor_client, signing_client)


class CookieSettingHandler(BaseHTTPRequestHandler):
    """Editor and signing endpoints that set a fresh cookie on every response"""

    def do_POST(self):
        self.server.received_cookies.append(self.headers.get("Cookie"))
        body = self.rfile.read(int(self.headers.get("Content-Length", 0)))

        if self.path == "/sign":
            answer = echo_signature(self.path, {"data": body})._json
        else:
            answer = editor_response(make_pdf(2))._json

        content = json.dumps(answer).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(content)))
        self.send_header("Set-Cookie", f"caller=request-{len(self.server.received_cookies)}; Path=/")
        self.end_headers()
        self.wfile.write(content)

    def log_message(self, format, *args):
        pass


@pytest.fixture
def cookie_service():
    """Local HTTP server; yields its base URL and the Cookie header of each request"""
    server = ThreadingHTTPServer(("127.0.0.1", 0), CookieSettingHandler)
    server.received_cookies = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}", server.received_cookies
    server.shutdown()
    server.server_close()
