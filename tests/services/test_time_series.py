"""Tests for daily time-series snapshots."""

from datetime import date

import pytest

from annotrack.services import TimeSeriesEngine
from annotrack.services.time_series import split_series_key


class TestSplitSeriesKey:
    """Tests for split_series_key function."""

    def test_plain(self):
        assert split_series_key("cavity-OPG") == ("cavity", "OPG")

    def test_hyphenated_class(self):
        assert split_series_key("root-canal-IOPA") == ("root-canal", "IOPA")

    def test_without_hyphen(self):
        assert split_series_key("cavity") == ("cavity", "Others")


class TestSnapshots:
    """Tests for current totals and daily snapshots."""

    def test_current_totals_use_stored_modality(self, services):
        services.project_history.append(1, {"cavity": {"image_count": 2, "annotation_count": 3}})
        services.project_history.append(2, {"cavity": {"image_count": 1, "annotation_count": 1}})
        services.modalities.set(1, "OPG")

        totals = services.time_series.get_current_totals()

        assert totals == {
            "cavity-OPG": {"images": 2, "annotations": 3},
            "cavity-Others": {"images": 1, "annotations": 1},
        }

    def test_store_snapshot_replaces_same_day(self, services, store):
        services.project_history.append(1, {"cavity": {"image_count": 2, "annotation_count": 2}})
        services.time_series.store_snapshot(today=date(2024, 3, 1))
        services.project_history.append(1, {"cavity": {"image_count": 5, "annotation_count": 5}})

        result = services.time_series.store_snapshot(today=date(2024, 3, 1))

        assert result["date"] == "2024-03-01"
        assert store.read("time_series", {}) == {"2024-03-01": {"cavity-Others": {"images": 5, "annotations": 5}}}


class TestDailyDeltas:
    """Tests for calculate_daily_deltas."""

    def test_single_day(self):
        series = [{"modalityClass": "cavity-OPG", "dailyData": [{"date": "2024-01-01", "images": 7, "annotations": 9}]}]

        result = TimeSeriesEngine.calculate_daily_deltas(series)[0]

        assert result["dailyData"][0]["imagesDelta"] == 0
        assert result["dailyData"][0]["annotationsDelta"] == 0
        assert result["totalImages"] == 7
        assert result["totalAnnotations"] == 9

    def test_three_days_newest_first(self):
        days = [
            {"date": "2024-01-03", "images": 12, "annotations": 20},
            {"date": "2024-01-02", "images": 10, "annotations": 15},
            {"date": "2024-01-01", "images": 4, "annotations": 5},
        ]

        result = TimeSeriesEngine.calculate_daily_deltas([{"dailyData": days}])[0]

        day3, day2, day1 = result["dailyData"]
        assert day3["imagesDelta"] == 2
        assert day3["annotationsDelta"] == 5
        assert day2["imagesDelta"] == 6
        assert day1["imagesDelta"] == 0
        assert result["totalImages"] == 12


class TestBackfill:
    """Tests for backfill."""

    def _seed(self, services):
        history = services.project_history
        history.append(1, {"cavity": {"image_count": 1, "annotation_count": 1}}, timestamp="2024-01-01T10:00:00.000000Z")
        history.append(1, {"cavity": {"image_count": 3, "annotation_count": 4}}, timestamp="2024-01-02T10:00:00.000000Z")
        history.append(2, {"pulp": {"image_count": 2, "annotation_count": 2}}, timestamp="2024-01-02T11:00:00.000000Z")

    def test_rebuilds_days_from_history(self, services, store):
        self._seed(services)

        result = services.time_series.backfill()

        assert result == {
            "success": True,
            "datesAdded": 2,
            "dateRange": {"start": "2024-01-01", "end": "2024-01-02"},
            "totalDates": 2,
        }
        series = store.read("time_series", {})
        assert series["2024-01-02"] == {
            "cavity-Others": {"images": 3, "annotations": 4},
            "pulp-Others": {"images": 2, "annotations": 2},
        }

    def test_never_overwrites_existing_day(self, services, store):
        """Test that a seeded day keeps its values and a second run adds nothing."""
        self._seed(services)
        seeded = {"cavity-Others": {"images": 99, "annotations": 99}}
        store.write("time_series", {"2024-01-01": seeded})

        first = services.time_series.backfill()
        second = services.time_series.backfill()

        assert first["datesAdded"] == 1
        assert second["datesAdded"] == 0
        assert second["totalDates"] == 2
        assert store.read("time_series", {})["2024-01-01"] == seeded

    def test_empty_history(self, services):
        result = services.time_series.backfill()

        assert result["datesAdded"] == 0
        assert result["dateRange"] == {"start": None, "end": None}


class TestQuery:
    """Tests for range queries."""

    @pytest.fixture
    def seeded(self, store):
        store.write(
            "time_series",
            {
                "2024-01-01": {"cavity-OPG": {"images": 1, "annotations": 1}},
                "2024-01-05": {"cavity-OPG": {"images": 4, "annotations": 6}, "pulp-IOPA": {"images": 9, "annotations": 9}},
                "2024-01-09": {"cavity-OPG": {"images": 7, "annotations": 8}},
            },
        )

    def test_preset_range(self):
        assert TimeSeriesEngine.get_preset_range("24h", date(2024, 1, 10)) == ("2024-01-09", "2024-01-10")
        assert TimeSeriesEngine.get_preset_range("30d", date(2024, 1, 31)) == ("2024-01-01", "2024-01-31")
        assert TimeSeriesEngine.get_preset_range("bogus", date(2024, 1, 10)) == ("2024-01-03", "2024-01-10")
        assert TimeSeriesEngine.get_preset_range(None, date(2024, 1, 10)) == ("2024-01-03", "2024-01-10")

    def test_get_range_is_inclusive_and_newest_first(self, services, seeded):
        series = {s["modalityClass"]: s for s in services.time_series.get_range("2024-01-01", "2024-01-05")}

        assert [d["date"] for d in series["cavity-OPG"]["dailyData"]] == ["2024-01-05", "2024-01-01"]
        assert series["pulp-IOPA"]["className"] == "pulp"
        assert series["pulp-IOPA"]["modality"] == "IOPA"

    def test_query_with_preset(self, services, seeded):
        result = services.time_series.query("7d", today=date(2024, 1, 10))

        assert result["success"] is True
        assert result["timeRange"] == {"from": "2024-01-03", "to": "2024-01-10", "days": 7}
        assert [m["modalityClass"] for m in result["metrics"]] == ["pulp-IOPA", "cavity-OPG"]
        cavity = result["metrics"][1]
        assert cavity["category"] == "Pathology"
        assert cavity["totalImages"] == 7
        assert cavity["dailyData"][0]["imagesDelta"] == 3
        assert result["count"] == 2

    def test_explicit_dates_override_preset(self, services, seeded):
        result = services.time_series.query("24h", start="2024-01-01", end="2024-01-01")

        assert result["count"] == 1
        assert result["timeRange"]["days"] == 0

    def test_invalid_dates(self, services):
        with pytest.raises(ValueError, match="startDate"):
            services.time_series.query(start="2024-13-01", end="2024-01-02")

    @pytest.mark.parametrize("start, end", [("2024-01-01", None), (None, "2024-01-01"), ("", "2024-01-01")])
    def test_half_open_range_rejected(self, services, start, end):
        with pytest.raises(ValueError, match="together"):
            services.time_series.query("7d", start=start, end=end)

    def test_start_after_end_rejected(self, services):
        with pytest.raises(ValueError, match="after endDate"):
            services.time_series.query(start="2024-01-05", end="2024-01-01")
