"""
Unit tests for GuestbookApp, calling handle() directly with parsed requests.
"""

import json
from pathlib import Path
from urllib.parse import urlencode

import pytest

from guestbook.handlers import GuestbookApp, StaticFileHandler
from guestbook.handlers.guestbook import ENTRIES_CONTENT_TYPE
from guestbook.http.request import HTTPRequest
from guestbook.http.status_codes import HTTPStatus
from guestbook.storage import StorageGateway


def form(**fields) -> bytes:
    return urlencode(fields).encode("utf-8")


def submission(name="ada", message="hello", domain="ada.dev", color="#ff0000") -> HTTPRequest:
    return HTTPRequest(
        method="POST",
        path="/",
        headers={"content-type": "application/x-www-form-urlencoded"},
        body=form(color=color, name=name, domain=domain, message=message),
        client_address=("127.0.0.1", 50000),
    )


def get(path: str) -> HTTPRequest:
    return HTTPRequest(method="GET", path=path, client_address=("127.0.0.1", 50000))


@pytest.fixture
def app(storage: StorageGateway, static_root: Path) -> GuestbookApp:
    return GuestbookApp(storage, StaticFileHandler(str(static_root)))


class TestEntries:

    def test_empty_list(self, app: GuestbookApp):
        response = app.handle(get("/entries"))

        assert response.status == HTTPStatus.OK
        assert response.headers["Content-Type"] == ENTRIES_CONTENT_TYPE == "text/css"
        assert response.body == b'<div id="entries" hx-swap-oob="true"></div>'

    def test_submit_returns_201_with_fragment(self, app: GuestbookApp):
        response = app.handle(submission(name="ada", message="first!"))

        assert response.status == HTTPStatus.CREATED
        assert response.headers["Content-Type"] == "text/css"
        body = response.body.decode()
        assert body.startswith('<div id="entries" hx-swap-oob="true">')
        assert "ada" in body and "first!" in body
        assert 'href="https://ada.dev"' in body

    def test_submit_to_any_path(self, app: GuestbookApp, storage: StorageGateway):
        request = submission()
        request.path = "/anything/else"

        assert app.handle(request).status == HTTPStatus.CREATED
        assert len(storage.list_public_entries()) == 1

    def test_newest_first(self, app: GuestbookApp):
        for name in ["first", "second", "third"]:
            app.handle(submission(name=name))

        body = app.handle(get("/entries")).body.decode()

        assert body.index("third") < body.index("second") < body.index("first")

    def test_markup_is_escaped(self, app: GuestbookApp):
        app.handle(submission(name="<script>alert(1)</script>", message="a & b"))

        body = app.handle(get("/entries")).body.decode()

        assert "<script>" not in body
        assert "&lt;script&gt;" in body
        assert "a &amp; b" in body

    def test_invalid_color_falls_back_to_black(self, app: GuestbookApp, storage: StorageGateway):
        app.handle(submission(color="red;position:fixed"))

        assert storage.list_public_entries()[0].color == "#000000"

    def test_missing_field_is_400(self, app: GuestbookApp, storage: StorageGateway):
        request = HTTPRequest(method="POST", path="/", body=form(name="ada", message="hi"))

        response = app.handle(request)

        assert response.status == HTTPStatus.BAD_REQUEST
        assert "color" in json.loads(response.body)["error"]
        assert storage.list_public_entries() == []

    def test_query_string_does_not_change_routing(self, app: GuestbookApp):
        request = HTTPRequest(method="GET", path="/entries", query_params={"page": ["2"]})
        assert app.handle(request).status == HTTPStatus.OK


class TestVisitorCounter:

    def test_get_count(self, app: GuestbookApp):
        response = app.handle(get("/visitor_count"))

        assert response.status == HTTPStatus.OK
        assert response.body == b"0"
        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_increment(self, app: GuestbookApp):
        for _ in range(3):
            response = app.handle(HTTPRequest(method="POST", path="/visitor_count"))
            assert response.status == HTTPStatus.OK
            assert response.body == b""
            assert response.headers["Access-Control-Allow-Origin"] == "*"

        assert app.handle(get("/visitor_count")).body == b"3"

    def test_preflight(self, app: GuestbookApp):
        response = app.handle(HTTPRequest(method="OPTIONS", path="/visitor_count"))

        assert response.status == HTTPStatus.NO_CONTENT
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "POST, GET, OPTIONS"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type"
        assert response.headers["Access-Control-Max-Age"] == "86400"

    def test_custom_origin(self, storage: StorageGateway, static_root: Path):
        app = GuestbookApp(storage, StaticFileHandler(str(static_root)), cors_origin="https://me.dev")

        response = app.handle(get("/visitor_count"))

        assert response.headers["Access-Control-Allow-Origin"] == "https://me.dev"

    @pytest.mark.parametrize("method", ["GET", "POST", "OPTIONS"])
    def test_disabled_counter_is_404(self, static_root: Path, method: str):
        storage = StorageGateway(":memory:", visitor_count=False)
        storage.initialize_schema()
        app = GuestbookApp(storage, StaticFileHandler(str(static_root)))

        response = app.handle(HTTPRequest(method=method, path="/visitor_count"))

        assert response.status == HTTPStatus.NOT_FOUND
        storage.close()


class TestEverythingElse:

    def test_root_serves_index(self, app: GuestbookApp, static_root: Path):
        response = app.handle(get("/"))

        assert response.status == HTTPStatus.OK
        assert response.body == (static_root / "index.html").read_bytes()

    def test_static_file(self, app: GuestbookApp, static_root: Path):
        response = app.handle(get("/css/style.css"))

        assert response.status == HTTPStatus.OK
        assert response.body == (static_root / "css" / "style.css").read_bytes()

    def test_missing_file_is_404_with_empty_body(self, app: GuestbookApp):
        response = app.handle(get("/nope.html"))

        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b""

    @pytest.mark.parametrize("method", ["PUT", "DELETE", "PATCH", "HEAD"])
    def test_other_methods_are_405(self, app: GuestbookApp, method: str):
        response = app.handle(HTTPRequest(method=method, path="/entries"))

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, POST, OPTIONS"

    def test_options_elsewhere_is_404(self, app: GuestbookApp):
        assert app.handle(HTTPRequest(method="OPTIONS", path="/entries")).status == HTTPStatus.NOT_FOUND

    def test_storage_failure_is_500(self, app: GuestbookApp, storage: StorageGateway):
        storage.close()

        for request in [get("/entries"), submission(), get("/visitor_count")]:
            response = app.handle(request)
            assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_static_files_survive_storage_failure(self, app: GuestbookApp, storage: StorageGateway):
        storage.close()
        assert app.handle(get("/")).status == HTTPStatus.OK
