"""Tests for progress reporting."""

from __future__ import annotations

import io
import logging

import pytest
from rich.console import Console

from distvault.progress import RichProgressSink, notify


class TestNotify:
    """Tests for the sink wrapper."""

    def test_none_sink(self):
        notify(None, 10, 100)

    def test_forwards_values(self):
        calls = []

        notify(lambda done, total: calls.append((done, total)), 10, None)

        assert calls == [(10, None)]

    def test_sink_failure_is_logged(self, caplog):
        def broken(done, total):
            raise ValueError("boom")

        with caplog.at_level(logging.WARNING, logger="distvault.progress"):
            notify(broken, 42, 100)

        assert "boom" in caplog.text


class TestRichProgressSink:
    """Tests for the rich progress bar sink."""

    def test_tracks_completed_bytes(self):
        console = Console(file=io.StringIO(), force_terminal=False)

        with RichProgressSink("Fetching", console=console) as sink:
            sink(100, 1000)
            sink(600, 1000)
            assert sink.completed == 600

    def test_unknown_total(self):
        console = Console(file=io.StringIO())

        with RichProgressSink("Fetching", console=console) as sink:
            sink(512, None)
            assert sink.completed == 512

    def test_requires_context(self):
        sink = RichProgressSink("Fetching", console=Console(file=io.StringIO()))

        with pytest.raises(RuntimeError):
            sink(1, None)
        assert sink.completed == 0
