"""
Tests for the incident feed
"""
import itertools
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from satarknity.core.errors import BackendError
from satarknity.incidents.feed import (
    FeedInvalidation,
    FeedStatus,
    IncidentFeed,
    MediaKind,
    classify_media,
    format_timestamp,
    render_incident,
    sort_newest_first,
)
from satarknity.incidents.models import Incident


def make_row(incident_id, created_at, media_urls=None):
    return {
        "id": incident_id,
        "description": f"Incident {incident_id}",
        "location": "Main St",
        "created_at": created_at,
        "media_urls": media_urls or [],
        "user_id": "u1",
    }


class TestClassifyMedia:
    """Render mode is chosen from the URL extension only."""

    @pytest.mark.parametrize("url,kind", [
        ("https://cdn.test/a/photo.jpg", MediaKind.IMAGE),
        ("https://cdn.test/a/photo.JPEG", MediaKind.IMAGE),
        ("https://cdn.test/a/anim.gif", MediaKind.IMAGE),
        ("https://cdn.test/a/shot.png", MediaKind.IMAGE),
        ("https://cdn.test/a/clip.mp4", MediaKind.VIDEO),
        ("https://cdn.test/a/clip.MOV", MediaKind.VIDEO),
        ("https://cdn.test/a/clip.webm", MediaKind.VIDEO),
        ("https://cdn.test/a/clip.ogg", MediaKind.VIDEO),
        ("https://cdn.test/a/photo.heic", MediaKind.UNSUPPORTED),
        ("https://cdn.test/a/photo", MediaKind.UNSUPPORTED),
        ("https://cdn.test/a/photo.jpg?token=1", MediaKind.UNSUPPORTED),
        ("https://cdn.test/jpg", MediaKind.UNSUPPORTED),
    ])
    def test_classification(self, url, kind):
        assert classify_media(url) == kind


class TestFormatTimestamp:

    def test_afternoon(self):
        assert format_timestamp("2025-03-04T21:05:00+00:00") == "Mar 4, 2025 • 9:05 PM"

    def test_midnight_and_noon(self):
        assert format_timestamp(datetime(2025, 1, 10, 0, 30)) == "Jan 10, 2025 • 12:30 AM"
        assert format_timestamp(datetime(2025, 1, 10, 12, 0)) == "Jan 10, 2025 • 12:00 PM"

    def test_zulu_suffix(self):
        assert format_timestamp("2025-03-04T08:00:00Z") == "Mar 4, 2025 • 8:00 AM"

    def test_unparseable_returned_as_is(self):
        assert format_timestamp("yesterday") == "yesterday"
        assert format_timestamp(None) == ""


class TestOrdering:

    def test_every_insert_order_sorts_newest_first(self):
        incidents = [
            Incident(id=i, description="d", location="l", created_at=ts)
            for i, ts in enumerate([
                "2025-03-01T10:00:00+00:00",
                "2025-03-01T11:00:00+00:00",
                "2025-03-01T11:00:00+00:00",
                "2025-03-02T09:00:00+00:00",
            ])
        ]

        for permutation in itertools.permutations(incidents):
            ordered = sort_newest_first(list(permutation))
            stamps = [i.created_at_dt for i in ordered]
            assert all(a >= b for a, b in zip(stamps, stamps[1:]))

    def test_naive_and_aware_timestamps_mix(self):
        incidents = [
            Incident(id=1, description="d", location="l", created_at=datetime(2025, 3, 1, 10)),
            Incident(id=2, description="d", location="l",
                     created_at=datetime(2025, 3, 1, 11, tzinfo=timezone.utc)),
        ]
        assert [i.id for i in sort_newest_first(incidents)] == [2, 1]

    def test_missing_timestamp_sorts_last(self):
        incidents = [
            Incident(id=1, description="d", location="l", created_at=None),
            Incident(id=2, description="d", location="l", created_at="2025-03-01T10:00:00+00:00"),
        ]
        assert [i.id for i in sort_newest_first(incidents)] == [2, 1]


class TestFeedInvalidation:

    def test_consume_once(self):
        invalidation = FeedInvalidation()
        assert invalidation.consume() is False

        invalidation.invalidate()

        assert invalidation.is_stale
        assert invalidation.consume() is True
        assert invalidation.consume() is False

    def test_version_counts_invalidations(self):
        invalidation = FeedInvalidation()

        invalidation.invalidate()
        invalidation.invalidate()

        assert invalidation.version == 2
        assert invalidation.consume() is True
        assert invalidation.consume() is False


class TestIncidentFeed:
    """Test suite for IncidentFeed."""

    def setup_method(self):
        """Setup test fixtures."""
        self.backend = MagicMock()
        self.backend.tables.select.return_value = [
            make_row(1, "2025-03-01T10:00:00+00:00"),
            make_row(2, "2025-03-01T12:00:00+00:00", ["https://cdn.test/x.png"]),
        ]
        self.invalidation = FeedInvalidation()
        self.feed = IncidentFeed(self.backend, self.invalidation, table="satarknity_incidents")

    def test_initial_state_is_loading(self):
        assert self.feed.snapshot().status == FeedStatus.LOADING

    def test_list_incidents_newest_first(self):
        snapshot = self.feed.list_incidents()

        assert snapshot.status == FeedStatus.READY
        assert [i.id for i in snapshot.incidents] == [2, 1]
        self.backend.tables.select.assert_called_once_with(
            "satarknity_incidents", order_by="created_at", ascending=False
        )

    def test_empty_is_distinct_from_loading_and_error(self):
        self.backend.tables.select.return_value = []

        snapshot = self.feed.list_incidents()

        assert snapshot.status == FeedStatus.READY
        assert snapshot.is_empty
        assert snapshot.error is None

    def test_cached_until_invalidated(self):
        self.feed.list_incidents()
        self.feed.list_incidents()
        assert self.backend.tables.select.call_count == 1

        self.invalidation.invalidate()
        self.feed.list_incidents()
        self.feed.list_incidents()
        assert self.backend.tables.select.call_count == 2

    def test_fetch_failure_keeps_previous_data(self):
        self.feed.list_incidents()
        self.backend.tables.select.side_effect = BackendError("database offline", http_status=503)
        self.invalidation.invalidate()

        snapshot = self.feed.list_incidents()

        assert snapshot.status == FeedStatus.ERROR
        assert "database offline" in snapshot.error
        assert [i.id for i in snapshot.incidents] == [2, 1]

    def test_recovers_after_failure(self):
        self.backend.tables.select.side_effect = BackendError("offline")
        assert self.feed.list_incidents().status == FeedStatus.ERROR

        self.backend.tables.select.side_effect = None
        snapshot = self.feed.list_incidents()

        assert snapshot.status == FeedStatus.READY
        assert len(snapshot.incidents) == 2

    def test_unconfigured_backend_reports_error(self):
        feed = IncidentFeed(None, self.invalidation)
        snapshot = feed.list_incidents()

        assert snapshot.status == FeedStatus.ERROR
        assert "not configured" in snapshot.error

    def test_malformed_rows_skipped(self):
        self.backend.tables.select.return_value = [
            {"description": "no id"},
            make_row(5, "2025-03-01T10:00:00+00:00"),
        ]
        snapshot = self.feed.list_incidents()
        assert [i.id for i in snapshot.incidents] == [5]

    def test_refresh_forces_fetch(self):
        self.feed.list_incidents()
        self.feed.refresh()
        assert self.backend.tables.select.call_count == 2

    def test_snapshot_dict_includes_render_modes(self):
        data = self.feed.list_incidents().to_dict()

        assert data["status"] == "ready"
        assert data["count"] == 2
        assert data["incidents"][0]["media"] == [
            {"url": "https://cdn.test/x.png", "kind": "image"}
        ]
        assert "user_id" not in data["incidents"][0]


class TestRenderIncident:

    def test_display_fields(self):
        incident = Incident.from_row(make_row(
            7, "2025-03-04T21:05:00+00:00",
            ["https://cdn.test/a.mov", "https://cdn.test/b.bin"],
        ))

        data = render_incident(incident)

        assert data["created_at_display"] == "Mar 4, 2025 • 9:05 PM"
        assert [m["kind"] for m in data["media"]] == ["video", "unsupported"]
