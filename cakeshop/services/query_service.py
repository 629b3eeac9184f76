# cakeshop/services/query_service.py
"""
Product search dispatch.

Free text is classified as either a plain keyword (name substring filter)
or a natural-language request (handed to an interpreter). Both routes end
in the same result shape, {reply, products}, with an optional sort applied
afterwards. Collaborator failures become a fallback reply, never an
exception.
"""
from __future__ import annotations

import enum
import itertools
import logging
import re
import threading
from dataclasses import dataclass, field

import requests

from ..errors import ExternalServiceError, ValidationError
from ..utils.money import to_number
from . import catalog_service

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm having trouble finding products right now. Please try again."
KEYWORD_REPLY = "Here are some products for you:"
INTERPRETED_REPLY = "Here are some options for you:"

MIN_NATURAL_LANGUAGE_LENGTH = 5
NATURAL_LANGUAGE_MARKERS = (
    "i want", "show me", "i need", "looking for", "find me",
    "under", "below", "less than", "upto", "up to",
    "above", "over", "more than", "from",
    "with", "having", "star", "stars", "rating",
    "and", "or", "between",
)


class QueryMode(str, enum.Enum):
    KEYWORD = "keyword"
    NATURAL_LANGUAGE = "natural-language"


class SortOrder(str, enum.Enum):
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    RATING_DESC = "rating-desc"


@dataclass
class SearchResult:
    reply: str
    products: list = field(default_factory=list)
    mode: QueryMode | None = None
    retry: bool = False
    request_id: str | None = None

    def as_api(self):
        data = {
            "reply": self.reply,
            "products": self.products,
            "mode": self.mode.value if self.mode else None,
            "retry": self.retry,
        }
        if self.request_id is not None:
            data["requestId"] = self.request_id
        return data


# ---- classification --------------------------------------------------------

class Classifier:
    def classify(self, text: str) -> QueryMode:
        raise NotImplementedError


class KeywordHeuristicClassifier(Classifier):
    """Natural language when the text is long enough and contains a marker word or phrase."""

    def __init__(self, markers=NATURAL_LANGUAGE_MARKERS, min_length=MIN_NATURAL_LANGUAGE_LENGTH):
        self.min_length = min_length
        self._pattern = re.compile(
            r"\b(?:" + "|".join(re.escape(m) for m in markers) + r")\b"
        )

    def classify(self, text: str) -> QueryMode:
        text = (text or "").strip().lower()
        if len(text) < self.min_length:
            return QueryMode.KEYWORD
        if self._pattern.search(text):
            return QueryMode.NATURAL_LANGUAGE
        return QueryMode.KEYWORD


# ---- collaborators ---------------------------------------------------------

class CatalogFilter:
    """FilterProducts(nameContains) backed by the product table."""

    def filter(self, name_contains: str) -> list:
        return catalog_service.filter_products(name_contains)


class QueryInterpreter:
    """InterpretQuery(text) -> {reply, products}."""

    def interpret(self, text: str) -> dict:
        raise NotImplementedError


class HttpQueryInterpreter(QueryInterpreter):

    def __init__(self, url, api_key=None, timeout=10.0, session=None):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def interpret(self, text: str) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            resp = self.session.post(self.url, json={"query": text}, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            body = resp.json()
        except requests.Timeout:
            raise ExternalServiceError("interpreter timed out")
        except (requests.RequestException, ValueError) as e:
            raise ExternalServiceError(f"interpreter request failed: {e}")

        if not isinstance(body, dict) or not isinstance(body.get("products", []), list):
            raise ExternalServiceError("interpreter returned an unexpected payload")
        return {
            "reply": body.get("reply") or body.get("explanation") or INTERPRETED_REPLY,
            "products": body.get("products") or [],
        }


_RANGE = re.compile(r"between\s+(\d+)\s*(?:and|to|-)\s*(\d+)|(\d+)\s*(?:to|-)\s*(\d+)")
_UNDER = re.compile(r"(?:under|below|less than|upto|up to)\s*(?:rs\.?\s*)?(\d+)")
_ABOVE = re.compile(r"(?:above|greater than|more than|over|from)\s*(?:rs\.?\s*)?(\d+)")
_ONLY_STARS = re.compile(r"only\s*(\d)\s*stars?")
_STARS = re.compile(r"(\d)\s*(?:\+\s*)?(?:stars?|rating)")
_NOT_FLAVOURS = {"me", "a", "some", "any", "the", "all", "for", "of", "good", "best", "want", "need"}


def parse_filters(text: str) -> dict:
    """Pull catalog filters out of a free-text request."""
    text = (text or "").lower()
    filters = {
        "category": None,
        "name_contains": None,
        "min_price": None,
        "max_price": None,
        "min_rating": None,
        "max_rating": None,
        "limit": 10,
    }

    if "cake" in text:
        filters["category"] = "cake"
    if "pastry" in text or "pastries" in text:
        filters["category"] = "pastry"

    m = _RANGE.search(text)
    if m:
        a, b = (int(x) for x in (m.group(1, 2) if m.group(1) else m.group(3, 4)))
        filters["min_price"], filters["max_price"] = min(a, b), max(a, b)
    m = _UNDER.search(text)
    if m:
        filters["max_price"] = int(m.group(1))
    m = _ABOVE.search(text)
    if m and not _STARS.match(text, m.start(1)):
        filters["min_price"] = int(m.group(1))

    m = _ONLY_STARS.search(text)
    if m:
        filters["min_rating"] = filters["max_rating"] = int(m.group(1))
    else:
        m = _STARS.search(text)
        if m:
            stars = int(m.group(1))
            filters["min_rating"] = stars
            if "above" not in text and "+" not in text:
                filters["max_rating"] = stars

    # flavour: the word right before "cake"/"pastry", e.g. "strawberry cake"
    tokens = text.split()
    for noun in ("cake", "cakes", "pastry", "pastries"):
        if noun in tokens:
            i = tokens.index(noun)
            if i > 0 and not tokens[i - 1].isdigit() and tokens[i - 1] not in _NOT_FLAVOURS:
                filters["name_contains"] = tokens[i - 1]
            break
    return filters


class RuleBasedInterpreter(QueryInterpreter):
    """Local interpreter used when no remote one is configured."""

    def interpret(self, text: str) -> dict:
        filters = parse_filters(text)
        products = catalog_service.search_products(**filters)
        if not products and filters["name_contains"]:
            # the flavour guess is the least reliable filter; retry without it
            products = catalog_service.search_products(**{**filters, "name_contains": None})
        if products:
            reply = f"I found {len(products)} product(s) matching your request."
        else:
            reply = "I couldn't find products matching that request. Try different filters."
        return {"reply": reply, "products": products}


# ---- dispatch --------------------------------------------------------------

def parse_sort(value) -> SortOrder | None:
    if value in (None, ""):
        return None
    try:
        return SortOrder(value)
    except ValueError:
        raise ValidationError("sort must be one of price-asc, price-desc, rating-desc", field="sort")


def _number(value):
    try:
        return to_number(value)
    except (ArithmeticError, TypeError, ValueError):
        return 0


def normalize_products(products):
    """Keep only product objects, with numeric price and averageRating."""
    if not isinstance(products, (list, tuple)):
        raise ExternalServiceError("product list expected")
    return [
        {**p, "price": _number(p.get("price")), "averageRating": _number(p.get("averageRating"))}
        for p in products
        if isinstance(p, dict)
    ]


def sort_products(products, order: SortOrder | None):
    if order is None:
        return list(products)
    if order is SortOrder.PRICE_ASC:
        return sorted(products, key=lambda p: p.get("price") or 0)
    if order is SortOrder.PRICE_DESC:
        return sorted(products, key=lambda p: p.get("price") or 0, reverse=True)
    return sorted(products, key=lambda p: p.get("averageRating") or 0, reverse=True)


class QueryDispatcher:

    def __init__(self, catalog: CatalogFilter, interpreter: QueryInterpreter, classifier: Classifier | None = None):
        self.catalog = catalog
        self.interpreter = interpreter
        self.classifier = classifier or KeywordHeuristicClassifier()

    def classify(self, text: str) -> QueryMode:
        return self.classifier.classify(text)

    def dispatch(self, text: str, sort=None, request_id=None) -> SearchResult:
        text = (text or "").strip()
        if not text:
            raise ValidationError("message is required", field="message")
        order = parse_sort(sort) if not isinstance(sort, SortOrder) else sort
        mode = self.classify(text)

        try:
            if mode is QueryMode.NATURAL_LANGUAGE:
                answer = self.interpreter.interpret(text)
                reply = answer.get("reply") or INTERPRETED_REPLY
                products = answer.get("products") or []
            else:
                products = self.catalog.filter(text)
                reply = KEYWORD_REPLY if products else f'No products found matching "{text}".'
            products = sort_products(normalize_products(products), order)
        except Exception as e:  # collaborator failure: fallback reply
            logger.warning("%s search failed for %r: %s", mode.value, text, e)
            return SearchResult(FALLBACK_REPLY, [], mode=mode, retry=True, request_id=request_id)

        return SearchResult(reply, products, mode=mode, request_id=request_id)


def build_dispatcher(config) -> QueryDispatcher:
    url = config.get("INTERPRETER_URL")
    if url:
        interpreter = HttpQueryInterpreter(
            url,
            api_key=config.get("INTERPRETER_API_KEY"),
            timeout=config.get("INTERPRETER_TIMEOUT", 10.0),
        )
    else:
        interpreter = RuleBasedInterpreter()
    return QueryDispatcher(CatalogFilter(), interpreter)


# ---- request correlation ---------------------------------------------------

class SearchInFlight(Exception):
    pass


class SearchSession:
    """
    One user's search box. Only one search may be in flight; a response is
    accepted only if it belongs to the latest, uncancelled request.

        rid = session.begin()
        result = dispatcher.dispatch(text, request_id=rid)
        if session.accept(result): show(result)
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._current = None

    @property
    def in_flight(self) -> bool:
        return self._current is not None

    def begin(self) -> str:
        with self._lock:
            if self._current is not None:
                raise SearchInFlight("a search is already running")
            self._current = str(next(self._ids))
            return self._current

    def cancel(self) -> None:
        with self._lock:
            self._current = None

    def accept(self, result: SearchResult) -> bool:
        with self._lock:
            if result.request_id is None or result.request_id != self._current:
                return False
            self._current = None
            return True

    def run(self, dispatcher: QueryDispatcher, text, sort=None) -> SearchResult | None:
        rid = self.begin()
        try:
            result = dispatcher.dispatch(text, sort=sort, request_id=rid)
        except Exception:
            with self._lock:
                if self._current == rid:
                    self._current = None
            raise
        return result if self.accept(result) else None
