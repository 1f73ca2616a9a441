"""Shared test fixtures for the GreenMirror test suite."""

import io
from concurrent.futures import Future

import fakeredis
import pytest
from PIL import Image

from models import AnalysisResult, DetectedItem, ItemCategory, MainCategory, MediaType
from profile_mutators import new_log_entry
from profile_service import ProfileService
from profile_store import ProfileStore
from session_manager import SessionManager

BADGE_URL = "data:image/webp;base64,UklGRg=="


# ── Executors ────────────────────────────────────────────────────────────

class InlineExecutor:
    """Runs submitted work immediately, in the caller's thread."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class DeferredExecutor:
    """Holds submitted work until run_all(), to simulate slow visualization calls."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        self.pending.append((fn, args, kwargs))
        return Future()

    def run_all(self):
        pending, self.pending = self.pending, []
        for fn, args, kwargs in pending:
            fn(*args, **kwargs)

    def shutdown(self, wait=True):
        pass


# ── Collaborators ────────────────────────────────────────────────────────

class FakeAnalyzer:
    def __init__(self, result=None, error=None, side_effect=None):
        self.result = result
        self.error = error
        self.side_effect = side_effect
        self.calls = []

    def analyze(self, content, mime_hint):
        self.calls.append((content, mime_hint))
        if self.side_effect:
            self.side_effect()
        if self.error:
            raise self.error
        return self.result


class FakeVisualizer:
    def __init__(self, handle=BADGE_URL, error=None):
        self.handle = handle
        self.error = error
        self.calls = []

    def visualize(self, summary, score):
        self.calls.append((summary, score))
        if self.error:
            raise self.error
        return self.handle


# ── Factories ────────────────────────────────────────────────────────────

def build_result(score=20, category=MainCategory.WASTE, summary="Sorted a PET bottle into recycling"):
    return AnalysisResult(
        summary=summary,
        mainCategory=category,
        totalCarbonScore=score,
        items=[
            DetectedItem(
                id="item-1",
                name="PET bottle",
                category=ItemCategory.RECYCLABLE,
                carbonFootprint=82.5,
                impactDescription="Virgin PET production is energy intensive.",
                suggestion="Switch to a refillable bottle.",
            )
        ],
        generalTips=["Rinse containers before recycling."],
    )


@pytest.fixture
def make_result():
    return build_result


@pytest.fixture
def make_entry():
    _counter = 0

    def _factory(score=20, category=MainCategory.WASTE, date="2026-10-19T05:00:00+00:00",
                 media_type=MediaType.IMAGE, visualization_url=None):
        nonlocal _counter
        _counter += 1
        return new_log_entry(build_result(score=score, category=category), media_type,
                             visualization_url=visualization_url, log_id=f"log-{_counter}", date=date)

    return _factory


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGBA", (1024, 768), (20, 180, 90, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


# ── Redis & services ─────────────────────────────────────────────────────

@pytest.fixture
def r():
    """Fresh fakeredis instance per test (decode_responses=True like production)."""
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(r):
    return ProfileStore(r)


@pytest.fixture
def service(store):
    return ProfileService(store)


@pytest.fixture
def local_tz(monkeypatch):
    monkeypatch.setenv("APP_TIMEZONE", "Asia/Jakarta")
    return "Asia/Jakarta"


@pytest.fixture
def analyzer(make_result):
    return FakeAnalyzer(result=make_result())


@pytest.fixture
def visualizer():
    return FakeVisualizer()


@pytest.fixture
def manager(analyzer, visualizer):
    return SessionManager(analyzer, visualizer, executor=InlineExecutor(),
                          clock=lambda: "2026-10-19T05:00:00+00:00")


@pytest.fixture
def deferred():
    return DeferredExecutor()


@pytest.fixture
def deferred_manager(analyzer, visualizer, deferred):
    return SessionManager(analyzer, visualizer, executor=deferred,
                          clock=lambda: "2026-10-19T05:00:00+00:00")
