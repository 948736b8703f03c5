"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from group_scanner_pkg.store import RecordStore


GROUPS_PAGE = """
<html><body>
<div role="main">
  <div class="x1lliihq card">
    <a role="link" href="/groups/123456789/?ref=abc&__cft__=xyz"><span>Python Developers</span></a>
    <span>Active 3 days ago · 12.3K members</span>
  </div>
  <div class="x1lliihq card">
    <a href="https://www.facebook.com/groups/gardening.club/"><span>Gardening Club</span></a>
    <span>Last active: 2 hours ago</span>
    <span>3,241 members</span>
  </div>
  <div class="x1lliihq card">
    <a href="/groups/discover/">Discover</a>
  </div>
  <div class="x1lliihq"><a href="/groups/feed/">Your feed</a></div>
  <a href="https://example.com/groups/999/">Elsewhere</a>
  <div data-pagelet="GroupCard"><a href="/groups/555/" aria-label="Quiet Readers"></a><span>8 members</span></div>
</div>
</body></html>
"""


def card(slug: str, name: str, details: str = "") -> str:
    return (
        f'<div class="x1lliihq"><a role="link" href="/groups/{slug}/">'
        f"<span>{name}</span></a><span>{details}</span></div>"
    )


def page(*cards: str) -> str:
    return "<html><body><div role='main'>" + "".join(cards) + "</div></body></html>"


class StepClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FixedClock:
    def __init__(self, at=None):
        self.at = at or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.at


@pytest.fixture
def groups_page():
    return GROUPS_PAGE


@pytest.fixture
def step_clock():
    return StepClock()


@pytest.fixture
def store(step_clock):
    return RecordStore(max_items=100, clock=step_clock)


@pytest.fixture
def fixed_store():
    return RecordStore(max_items=100, clock=FixedClock())


class FakePage:
    """Stands in for a Playwright page whose feed grows as it is scrolled."""

    def __init__(self, batches, url="https://www.facebook.com/groups/joins/"):
        self.batches = batches
        self.url = url
        self.scrolls = 0
        self.exposed = {}
        self.scripts = []
        self.fail_content = False

    async def content(self):
        if self.fail_content:
            raise RuntimeError("Execution context was destroyed")
        visible = self.batches[: min(self.scrolls + 1, len(self.batches))]
        return page(*[c for batch in visible for c in batch])

    async def evaluate(self, script, arg=None):
        self.scripts.append(script)
        if "scrollBy" in script:
            self.scrolls += 1

    async def expose_function(self, name, fn):
        if name in self.exposed:
            raise RuntimeError(f'Function "{name}" has been already registered')
        self.exposed[name] = fn


def batches(count, per_batch=2):
    return [
        [card(f"g{b}{i}", f"Group {b} {i}", f"{(b + 1) * 10} members") for i in range(per_batch)]
        for b in range(count)
    ]
