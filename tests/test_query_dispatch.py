import pytest
import requests

from cakeshop.errors import ExternalServiceError, ValidationError
from cakeshop.services import query_service
from cakeshop.services.query_service import (
    FALLBACK_REPLY, HttpQueryInterpreter, KeywordHeuristicClassifier, QueryDispatcher, QueryMode,
    RuleBasedInterpreter, SearchInFlight, SearchSession, SortOrder, parse_filters,
)
from tests.conftest import FakeCatalog, FakeInterpreter

CATALOG = [
    {"id": 1, "name": "Chocolate Truffle Cake", "price": 1000, "averageRating": 4.5},
    {"id": 2, "name": "Chocolate Chip Pastry", "price": 120, "averageRating": 3.0},
    {"id": 3, "name": "Dark Chocolate Mousse", "price": 700, "averageRating": 4.9},
]


@pytest.mark.parametrize("text, mode", [
    ("chocolate cake", QueryMode.KEYWORD),
    ("cake under 5000 with 4 star", QueryMode.NATURAL_LANGUAGE),
    ("show me strawberry cakes", QueryMode.NATURAL_LANGUAGE),
    ("pastries between 100 and 200", QueryMode.NATURAL_LANGUAGE),
    ("red velvet", QueryMode.KEYWORD),
    ("wonderland cake", QueryMode.KEYWORD),  # "under" inside a word
    # markers are whole words: "or" inside "forest" does not count
    ("black forest cake", QueryMode.KEYWORD),
    ("chocolate or vanilla", QueryMode.NATURAL_LANGUAGE),
    ("and", QueryMode.KEYWORD),
])
def test_classify(text, mode):
    assert KeywordHeuristicClassifier().classify(text) is mode


def test_keyword_path_filters_catalog():
    catalog, interpreter = FakeCatalog(CATALOG), FakeInterpreter()
    result = QueryDispatcher(catalog, interpreter).dispatch("chocolate")
    assert result.mode is QueryMode.KEYWORD
    assert [p["id"] for p in result.products] == [1, 2, 3]
    assert catalog.calls == ["chocolate"]
    assert interpreter.calls == []
    assert not result.retry


def test_keyword_path_no_match():
    result = QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()).dispatch("vanilla")
    assert result.products == []
    assert "vanilla" in result.reply


def test_natural_language_path_uses_interpreter():
    interpreter = FakeInterpreter({"reply": "Two picks", "products": CATALOG[:2]})
    result = QueryDispatcher(FakeCatalog(), interpreter).dispatch("show me chocolate cakes under 1500")
    assert result.mode is QueryMode.NATURAL_LANGUAGE
    assert result.reply == "Two picks"
    assert len(result.products) == 2
    assert interpreter.calls == ["show me chocolate cakes under 1500"]


@pytest.mark.parametrize("sort, ids", [
    ("price-asc", [2, 3, 1]),
    ("price-desc", [1, 3, 2]),
    ("rating-desc", [3, 1, 2]),
    (None, [1, 2, 3]),
])
def test_sort_applied_after_dispatch(sort, ids):
    result = QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()).dispatch("chocolate", sort=sort)
    assert [p["id"] for p in result.products] == ids


def test_sort_applies_to_interpreted_results_too():
    interpreter = FakeInterpreter({"reply": "ok", "products": list(CATALOG)})
    result = QueryDispatcher(FakeCatalog(), interpreter).dispatch("show me chocolate", sort=SortOrder.PRICE_ASC)
    assert [p["id"] for p in result.products] == [2, 3, 1]


def test_unknown_sort():
    with pytest.raises(ValidationError):
        QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()).dispatch("chocolate", sort="newest")


def test_empty_query():
    with pytest.raises(ValidationError):
        QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()).dispatch("   ")


def test_interpreter_failure_falls_back():
    interpreter = FakeInterpreter(error=ExternalServiceError("timed out"))
    result = QueryDispatcher(FakeCatalog(CATALOG), interpreter).dispatch("show me cakes under 900", request_id="r1")
    assert result.reply == FALLBACK_REPLY
    assert result.products == []
    assert result.retry is True
    assert result.as_api()["requestId"] == "r1"


def test_non_product_items_are_dropped():
    interpreter = FakeInterpreter({"reply": "ok", "products": ["Chocolate Cake", "Red Velvet", CATALOG[0]]})
    result = QueryDispatcher(FakeCatalog(), interpreter).dispatch("show me cakes", sort="rating-desc")
    assert [p["id"] for p in result.products] == [1]
    assert not result.retry


def test_mixed_price_types_sort_numerically():
    interpreter = FakeInterpreter({"reply": "ok", "products": [
        {"id": 1, "price": "500"},
        {"id": 2, "price": 100},
        {"id": 3, "price": None, "averageRating": "4.5"},
    ]})
    result = QueryDispatcher(FakeCatalog(), interpreter).dispatch("show me cakes", sort="price-asc")
    assert [p["id"] for p in result.products] == [3, 2, 1]
    assert [p["price"] for p in result.products] == [0, 100, 500]
    assert result.products[0]["averageRating"] == 4.5


def test_unusable_product_list_falls_back():
    interpreter = FakeInterpreter({"reply": "ok", "products": "Chocolate Cake"})
    result = QueryDispatcher(FakeCatalog(), interpreter).dispatch("show me cakes", sort="price-asc")
    assert result.reply == FALLBACK_REPLY
    assert result.retry is True


def test_keyword_path_unaffected_by_interpreter_outage():
    interpreter = FakeInterpreter(error=ExternalServiceError("down"))
    result = QueryDispatcher(FakeCatalog(CATALOG), interpreter).dispatch("truffle")
    assert [p["id"] for p in result.products] == [1]
    assert not result.retry


def test_catalog_failure_falls_back():
    result = QueryDispatcher(FakeCatalog(error=RuntimeError("db gone")), FakeInterpreter()).dispatch("truffle")
    assert result.reply == FALLBACK_REPLY
    assert result.retry is True


def test_custom_classifier_is_respected():
    class AlwaysNatural:
        def classify(self, text):
            return QueryMode.NATURAL_LANGUAGE

    interpreter = FakeInterpreter()
    QueryDispatcher(FakeCatalog(CATALOG), interpreter, classifier=AlwaysNatural()).dispatch("truffle")
    assert interpreter.calls == ["truffle"]


# ---- rule-based interpretation ---------------------------------------------

def test_parse_filters_price_and_stars():
    f = parse_filters("cake under 5000 with 4 star")
    assert f["category"] == "cake"
    assert f["max_price"] == 5000
    assert (f["min_rating"], f["max_rating"]) == (4, 4)


def test_parse_filters_range_and_flavour():
    f = parse_filters("strawberry cake between 500 and 800")
    assert (f["min_price"], f["max_price"]) == (500, 800)
    assert f["name_contains"] == "strawberry"


def test_parse_filters_stars_above():
    f = parse_filters("pastries 3 star above")
    assert f["category"] == "pastry"
    assert (f["min_rating"], f["max_rating"]) == (3, None)
    assert f["min_price"] is None


def test_parse_filters_only_stars():
    f = parse_filters("only 5 stars")
    assert (f["min_rating"], f["max_rating"]) == (5, 5)


def test_parse_filters_above_price():
    f = parse_filters("cakes above 900")
    assert f["min_price"] == 900
    assert f["min_rating"] is None


def test_rule_based_interpreter_on_catalog(products):
    answer = RuleBasedInterpreter().interpret("show me cakes under 800")
    assert [p["name"] for p in answer["products"]] == ["Strawberry Cake"]
    assert "1 product" in answer["reply"]


def test_rule_based_interpreter_drops_unknown_flavour(products):
    answer = RuleBasedInterpreter().interpret("i want pineapple cake")
    assert {p["name"] for p in answer["products"]} == {"Chocolate Truffle Cake", "Strawberry Cake"}


def test_build_dispatcher_defaults_to_rule_based(app):
    dispatcher = query_service.build_dispatcher({"INTERPRETER_URL": None})
    assert isinstance(dispatcher.interpreter, RuleBasedInterpreter)


# ---- HTTP interpreter ------------------------------------------------------

class _Response:
    def __init__(self, body, status=200):
        self.body = body
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.body, Exception):
            raise self.body
        return self.body


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def test_http_interpreter_posts_query():
    session = _Session(_Response({"explanation": "Found one", "products": [CATALOG[0]]}))
    answer = HttpQueryInterpreter("http://ai.local/chat", api_key="k", timeout=3, session=session).interpret("cakes")
    assert answer == {"reply": "Found one", "products": [CATALOG[0]]}
    url, kwargs = session.requests[0]
    assert url == "http://ai.local/chat"
    assert kwargs["json"] == {"query": "cakes"}
    assert kwargs["timeout"] == 3
    assert kwargs["headers"]["Authorization"] == "Bearer k"


@pytest.mark.parametrize("session", [
    _Session(error=requests.Timeout()),
    _Session(error=requests.ConnectionError("refused")),
    _Session(_Response({}, status=500)),
    _Session(_Response(ValueError("not json"))),
    _Session(_Response({"products": "nope"})),
])
def test_http_interpreter_errors(session):
    with pytest.raises(ExternalServiceError):
        HttpQueryInterpreter("http://ai.local/chat", session=session).interpret("cakes")


# ---- request correlation ---------------------------------------------------

def test_session_blocks_duplicate_submission():
    session = SearchSession()
    session.begin()
    with pytest.raises(SearchInFlight):
        session.begin()


def test_session_drops_stale_response():
    session = SearchSession()
    first = session.begin()
    session.cancel()
    second = session.begin()
    assert first != second
    stale = query_service.SearchResult("old", request_id=first)
    fresh = query_service.SearchResult("new", request_id=second)
    assert session.accept(stale) is False
    assert session.in_flight
    assert session.accept(fresh) is True
    assert not session.in_flight


def test_session_drops_response_after_cancel():
    session = SearchSession()
    rid = session.begin()
    session.cancel()
    assert session.accept(query_service.SearchResult("late", request_id=rid)) is False


def test_session_run():
    session = SearchSession()
    result = session.run(QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()), "truffle")
    assert result.request_id == "1"
    assert [p["id"] for p in result.products] == [1]
    assert not session.in_flight


def test_session_run_releases_on_error():
    session = SearchSession()
    with pytest.raises(ValidationError):
        session.run(QueryDispatcher(FakeCatalog(CATALOG), FakeInterpreter()), "")
    assert not session.in_flight
