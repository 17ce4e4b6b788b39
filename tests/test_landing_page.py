"""Tests for landing page generation."""

import tempfile
from pathlib import Path

import pytest

from telraam_collector.landing_page import generate_landing_page, group_links, render_landing_page
from telraam_collector.models import DailyEntry, DailyTotals
from telraam_collector.storage import PersistenceStore


@pytest.fixture
def store():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield PersistenceStore(str(Path(tmpdir) / "data"))


def test_group_links_sections():
    """Test links are grouped per device with root files first."""
    sections = group_links([
        "data/device_2/2024-06.json",
        "data/devices.json",
        "data/device_1/daily/2024-06.json",
        "data/device_1/2024-06.json",
    ])

    assert sections == [
        ("Root & metadata", [("data/devices.json", "metadata")]),
        ("device_1", [
            ("data/device_1/2024-06.json", "monthly"),
            ("data/device_1/daily/2024-06.json", "daily"),
        ]),
        ("device_2", [("data/device_2/2024-06.json", "monthly")]),
    ]


def test_render_escapes_paths():
    """Test paths are HTML-escaped."""
    page = render_landing_page(["data/<script>.json"], "2024-06-01T00:00:00.000Z")

    assert "<script>.json" not in page
    assert "&lt;script&gt;.json" in page
    assert "<strong>Files:</strong> 1" in page


def test_generate_landing_page(store):
    """Test index.html is written next to the data directory and links every file."""
    store.save_monthly("123", "2024-06", [{"date": "2024-06-01T00:00:00.000Z", "car": 1}])
    store.save_daily("123", "2024-06", [DailyEntry(date="2024-06-01", totals=DailyTotals(hours=1))])

    output = generate_landing_page(store)

    assert output.name == "index.html"
    assert output.parent == store.data_dir.resolve().parent
    page = output.read_text(encoding="utf-8")
    assert 'href="data/device_123/2024-06.json"' in page
    assert 'href="data/device_123/daily/2024-06.json"' in page


def test_generate_landing_page_without_data(store):
    """Test an empty data directory still produces a page."""
    output = generate_landing_page(store)

    assert "<strong>Files:</strong> 0" in output.read_text(encoding="utf-8")
