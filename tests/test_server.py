import logging
import socket
import threading
import time

import pytest
import requests

from simplesearch.config import Config
from simplesearch.elastic import NoHitsError, Product
from simplesearch.server import DEFAULT_PRICE_TOP, SearchServer, create_app


class FakeSearcher:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.requests = []

    def make_search(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def products():
    return [Product(name="Desk lamp", description="warm light", price=25.0, stock=3)]


def client_for(searcher):
    return create_app(searcher, "test-service").test_client()


def test_search_returns_results(products):
    client = client_for(FakeSearcher(products))
    response = client.post("/search", json={"search_for": "lamp"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "results"
    assert [item["name"] for item in body["result"]] == ["Desk lamp"]
    assert body["result"][0]["price"] == 25.0


def test_missing_search_text_is_reported():
    searcher = FakeSearcher()
    response = client_for(searcher).post("/search", json={"search_for": ""})
    assert response.get_json() == {
        "message": "you must provide the desired search",
        "result": None,
    }
    assert searcher.requests == []


def test_zero_filters_get_default_price_top(products):
    searcher = FakeSearcher(products)
    client_for(searcher).post("/search", json={"search_for": "lamp"})
    assert searcher.requests[0].filters.price_bottom == 0
    assert searcher.requests[0].filters.price_top == DEFAULT_PRICE_TOP


def test_given_filters_are_kept(products):
    searcher = FakeSearcher(products)
    client_for(searcher).post(
        "/search",
        json={"search_for": "lamp", "filters": {"price_bottom": 5, "price_top": 40}},
    )
    assert searcher.requests[0].filters.price_bottom == 5.0
    assert searcher.requests[0].filters.price_top == 40.0


def test_no_hits_reports_none_found():
    client = client_for(FakeSearcher(error=NoHitsError()))
    response = client.post("/search", json={"search_for": "ghost"})
    assert response.get_json() == {"message": "none found", "result": None}


def test_backend_failure_is_internal_error():
    client = client_for(FakeSearcher(error=RuntimeError("down")))
    response = client.post("/search", json={"search_for": "lamp"})
    assert response.get_json() == {"code": 500, "message": "Internal Server Error"}


def test_invalid_json_is_bad_request():
    response = client_for(FakeSearcher()).post(
        "/search", data="{", content_type="application/json"
    )
    assert response.get_json() == {"code": 400, "message": "Bad Request"}


def test_non_json_body_is_bad_request():
    response = client_for(FakeSearcher()).post(
        "/search", data="search_for=lamp", content_type="text/plain"
    )
    assert response.get_json()["code"] == 400


def test_wrong_field_type_is_bad_request():
    response = client_for(FakeSearcher()).post("/search", json={"search_for": 7})
    assert response.get_json()["code"] == 400


def test_unknown_route_reports_path():
    response = client_for(FakeSearcher()).get("/search")
    assert response.get_json() == {"code": 404, "message": "Cannot GET /search"}


def test_run_rejects_address_without_port(caplog):
    log = logging.getLogger("tests.server")
    caplog.set_level(logging.DEBUG, logger="tests.server")
    server = SearchServer(Config(address="localhost"), FakeSearcher(), log)
    with pytest.raises(ValueError):
        server.run()
    assert [r.getMessage() for r in caplog.records] == ["listening error"]


def _free_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_run_serves_until_shutdown(products):
    port = _free_port()
    server = SearchServer(Config(address=f"127.0.0.1:{port}"), FakeSearcher(products))
    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    body = None
    deadline = time.monotonic() + 10
    while time.monotonic() < deadline:
        try:
            body = requests.post(
                f"http://127.0.0.1:{port}/search", json={"search_for": "lamp"}, timeout=2
            ).json()
            break
        except requests.ConnectionError:
            time.sleep(0.05)

    server.shutdown()
    thread.join(timeout=10)
    assert body["message"] == "results"
    assert not thread.is_alive()