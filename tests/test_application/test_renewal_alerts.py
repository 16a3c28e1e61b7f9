"""Tests for renewal alert generation and dismissal."""
from datetime import date, timedelta

import pytest

from subtracker.application.alerts import (
    AlertKey, DismissedAlerts, alert_urgency, filter_dismissed, generate_alerts,
)
from subtracker.domain.subscription import Subscription

TODAY = date(2025, 6, 1)


def _sub(sid="s1", days=5, **kw):
    data = dict(id=sid, name=f"Sub {sid}", next_renewal_date=TODAY + timedelta(days=days),
                amount=15.0, alert_days_before=[7, 3, 1])
    data.update(kw)
    return Subscription(**data)


class TestGenerateAlerts:
    def test_smallest_matching_lead_wins(self):
        alerts = generate_alerts([_sub(days=5)], TODAY, escalation_threshold=50)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.days_before == 7
        assert alert.days_until == 5
        assert alert.alert_date == TODAY - timedelta(days=2)
        assert alert.amount == 15.0

    def test_closer_renewal_uses_tighter_lead(self):
        alerts = generate_alerts([_sub(days=2)], TODAY, escalation_threshold=50)
        assert alerts[0].days_before == 3

    def test_renewal_today_is_alerted(self):
        alerts = generate_alerts([_sub(days=0)], TODAY, escalation_threshold=50)
        assert alerts[0].days_before == 1
        assert alerts[0].urgency == "critical"

    def test_outside_all_leads(self):
        assert generate_alerts([_sub(days=10)], TODAY, escalation_threshold=50) == []

    def test_past_renewal_ignored(self):
        assert generate_alerts([_sub(days=-1)], TODAY, escalation_threshold=50) == []

    def test_inactive_statuses_skipped(self):
        subs = [_sub("p", status="paused"), _sub("c", status="cancelled"), _sub("h", status="on_hold")]
        assert generate_alerts(subs, TODAY) == []

    def test_trial_is_alerted(self):
        assert len(generate_alerts([_sub(status="trial")], TODAY)) == 1

    def test_snoozed_until_future_is_skipped(self):
        sub = _sub(alert_snoozed_until=TODAY + timedelta(days=1))
        assert generate_alerts([sub], TODAY) == []

    def test_snooze_expires_on_its_date(self):
        sub = _sub(alert_snoozed_until=TODAY)
        assert len(generate_alerts([sub], TODAY)) == 1

    def test_expensive_subscription_escalates_to_30_days(self):
        sub = _sub(days=20, amount=60.0)
        alerts = generate_alerts([sub], TODAY, escalation_threshold=50)
        assert len(alerts) == 1
        assert alerts[0].days_before == 30

    def test_escalation_relative_to_household_average(self):
        subs = [_sub("a", days=100, amount=10.0), _sub("b", days=100, amount=10.0),
                _sub("c", days=100, amount=10.0), _sub("big", days=20, amount=100.0)]
        alerts = generate_alerts(subs, TODAY, escalation_threshold=500)
        assert [a.subscription_id for a in alerts] == ["big"]
        assert alerts[0].days_before == 30

    def test_cheap_subscription_not_escalated(self):
        assert generate_alerts([_sub(days=20, amount=10.0)], TODAY, escalation_threshold=50) == []

    def test_sorted_most_urgent_first(self):
        subs = [_sub("late", days=6), _sub("soon", days=1), _sub("mid", days=3)]
        alerts = generate_alerts(subs, TODAY)
        assert [a.subscription_id for a in alerts] == ["soon", "mid", "late"]

    def test_idempotent(self):
        subs = [_sub("a", days=1), _sub("b", days=6)]
        first = generate_alerts(subs, TODAY)
        second = generate_alerts(subs, TODAY)
        assert [a.id for a in first] == [a.id for a in second]

    def test_new_renewal_date_new_key(self):
        first = generate_alerts([_sub(days=1)], TODAY)[0]
        rolled = _sub(days=1, next_renewal_date=first.renewal_date + timedelta(days=30))
        second = generate_alerts([rolled], first.renewal_date + timedelta(days=29))[0]
        assert first.id != second.id


def test_urgency_bands():
    assert alert_urgency(0) == "critical"
    assert alert_urgency(1) == "critical"
    assert alert_urgency(3) == "high"
    assert alert_urgency(7) == "medium"
    assert alert_urgency(14) == "low"
    assert alert_urgency(30) == "info"


# ---- alert keys & dismissal ----

def test_alert_key_token_round_trip():
    key = AlertKey("0b7c-uuid", date(2025, 6, 6), 7)
    assert key.token() == "0b7c-uuid:2025-06-06:7"
    assert AlertKey.from_token(key.token()) == key


def test_alert_key_malformed_token():
    with pytest.raises(ValueError):
        AlertKey.from_token("garbage")


def test_dismissed_alerts_filtering():
    alerts = generate_alerts([_sub("a", days=1), _sub("b", days=2)], TODAY)
    dismissed = DismissedAlerts()
    dismissed.dismiss(alerts[0].id)

    remaining = filter_dismissed(alerts, dismissed)
    assert [a.subscription_id for a in remaining] == ["b"]
    assert len(dismissed) == 1


def test_dismissed_alerts_from_tokens():
    key = AlertKey("a", date(2025, 6, 2), 1)
    dismissed = DismissedAlerts.from_tokens([key.token()])
    assert key in dismissed
    assert dismissed.tokens() == [key.token()]


def test_dismissal_does_not_touch_generation():
    subs = [_sub(days=1)]
    dismissed = DismissedAlerts(a.id for a in generate_alerts(subs, TODAY))
    assert len(generate_alerts(subs, TODAY)) == 1
    assert filter_dismissed(generate_alerts(subs, TODAY), dismissed) == []
