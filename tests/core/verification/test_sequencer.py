"""
Tests for the event sequencer
"""
from datetime import datetime
from aerotrace.core.verification.sequencer import sequence_events


class TestSequencer:

    def test_orders_by_date(self, make_event):
        late = make_event("remove", "2021-01-01")
        early = make_event("manufacture", "2019-01-01")
        middle = make_event("install", "2019-06-01")

        result = sequence_events([late, early, middle])

        assert [e.id for e in result.events] == [early.id, middle.id, late.id]

    def test_same_date_keeps_record_order(self, make_event):
        """Sorting is stable"""
        a = make_event("receiving_inspection", "2020-05-05")
        b = make_event("teardown", "2020-05-05")
        c = make_event("repair", "2020-05-05")
        earlier = make_event("remove", "2020-05-01")

        result = sequence_events([a, b, c, earlier])

        assert [e.id for e in result.events] == [earlier.id, a.id, b.id, c.id]

    def test_undated_events_excluded(self, make_event):
        dated = make_event("install", "2019-06-01")
        undated = make_event("remove", "around 2020")

        result = sequence_events([dated, undated])

        assert [e.id for e in result.events] == [dated.id]
        assert [e.id for e in result.undated] == [undated.id]

    def test_hour_regression_flagged(self, make_event):
        first = make_event("remove", "2020-01-01", hours_at_event=1000)
        second = make_event("remove", "2020-06-01", hours_at_event=800)

        result = sequence_events([first, second])

        regressions = result.regressions_for("hours")
        assert len(regressions) == 1
        reg = regressions[0]
        assert reg.earlier_event_id == first.id
        assert reg.later_event_id == second.id
        assert reg.delta == -200
        assert reg.trigger_ref == f"{first.id}:{second.id}"
        assert result.regressions_for("cycles") == []
        # Regressed pairs are not also rate-checked
        assert result.rate_anomalies == []

    def test_regression_not_corrected(self, make_event):
        first = make_event("remove", "2020-01-01", cycles_at_event=500)
        second = make_event("install", "2020-02-01", cycles_at_event=400)

        result = sequence_events([first, second])

        assert result.events[1].cycles_at_event == 400

    def test_compares_with_previous_reading(self, make_event):
        """Events without a counter are skipped when pairing readings"""
        a = make_event("install", "2020-01-01", hours_at_event=100)
        b = make_event("transfer", "2020-02-01")
        c = make_event("remove", "2020-03-01", hours_at_event=90)

        result = sequence_events([a, b, c])

        assert len(result.regressions) == 1
        assert result.regressions[0].earlier_event_id == a.id
        assert result.regressions[0].later_event_id == c.id

    def test_rate_anomaly(self, make_event):
        a = make_event("install", "2020-01-01", hours_at_event=100)
        b = make_event("remove", "2020-01-11", hours_at_event=1000)

        result = sequence_events([a, b])

        anomalies = result.rate_anomalies_for("hours")
        assert len(anomalies) == 1
        assert anomalies[0].days_between == 10
        assert anomalies[0].rate_per_day == 90.0
        assert anomalies[0].trigger_ref.endswith(":rate")

    def test_plausible_rate_not_flagged(self, make_event):
        a = make_event("install", "2020-01-01", hours_at_event=100, cycles_at_event=50)
        b = make_event("remove", "2020-01-11", hours_at_event=200, cycles_at_event=110)

        result = sequence_events([a, b])

        assert result.rate_anomalies == []
        assert result.regressions == []

    def test_same_day_increase_not_rate_checked(self, make_event):
        a = make_event("remove", datetime(2020, 1, 1, 8), hours_at_event=100)
        b = make_event("receiving_inspection", datetime(2020, 1, 1, 17), hours_at_event=150)

        assert sequence_events([a, b]).rate_anomalies == []

    def test_empty(self):
        result = sequence_events([])
        assert result.events == []
        assert result.regressions == []
