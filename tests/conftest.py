"""Shared fixtures for the patch parser test suite."""

from datetime import date

import pytest

from patch_parser import ExtractionEngine, HtmlDocument, ParserSettings

SAMPLE_HTML = """
<html>
<head>
  <title>Patch Notes Hub</title>
  <meta name="description" content="Latest patch notes">
  <meta name="author" content="Riot Writer">
  <meta property="article:published_time" content="2024-01-10T12:00:00Z">
</head>
<body>
  <section id="news">
    <article class="news-card" id="card-1">
      <h2 class="title">Patch Notes 14.2.1</h2>
      <a class="link" href="/en-us/news/game-updates/patch-14-2-notes/">Read more</a>
      <img class="thumb" src="https://cdn.example.com/patch-14-2.jpg">
    </article>
    <article class="news-card" id="card-2">
      <h3>パッチ 14.3</h3>
      <img class="thumb" data-src="https://cdn.example.com/news-14-3.png">
    </article>
    <a class="news-card" id="card-3" href="https://example.com/patch-14-4">
      <span class="label">Update 14.4</span>
    </a>
  </section>
  <p>First paragraph about the patch.</p>
  <p>Second paragraph with champion changes.</p>
</body>
</html>
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


FIXED_TODAY = date(2024, 5, 17)


@pytest.fixture
def settings():
    return ParserSettings()


@pytest.fixture
def fixed_today():
    return FIXED_TODAY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(settings, clock):
    return ExtractionEngine(settings, clock=clock, today=lambda: FIXED_TODAY)


@pytest.fixture
def document(engine):
    return engine.load_document(SAMPLE_HTML)


@pytest.fixture
def sample_html():
    return SAMPLE_HTML


@pytest.fixture
def make_document():
    def _make(html: str) -> HtmlDocument:
        return HtmlDocument(html)

    return _make
