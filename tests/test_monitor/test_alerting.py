"""Tests for keyword matching and the alert engine."""

import pytest

from guardit.monitor.alerting import AlertEngine, match_keywords
from guardit.monitor.broadcast import BroadcastHub
from guardit.monitor.cache import StatusCache
from guardit.schemas.records import KeywordRuleInfo

pytestmark = pytest.mark.asyncio


def _rule(keyword: str, alert_type: str = "warning", severity: int = 1, id: int = 1):
    return KeywordRuleInfo(id=id, keyword=keyword, alert_type=alert_type, severity=severity)


class TestMatchKeywords:
    async def test_case_insensitive_substring(self):
        rules = [_rule("Disk Full")]
        assert match_keywords("backup failed: DISK FULL on /var", rules) == rules

    async def test_every_match_not_just_first(self):
        rules = [_rule("failed", id=1), _rule("disk full", id=2), _rule("timeout", id=3)]

        matches = match_keywords("backup failed: disk full", rules)

        assert [r.keyword for r in matches] == ["failed", "disk full"]

    async def test_duplicate_keyword_matches_once(self):
        rules = [_rule("error", id=1), _rule("ERROR", id=2)]
        assert len(match_keywords("fatal error", rules)) == 1

    async def test_no_match(self):
        assert match_keywords("all good", [_rule("error")]) == []


@pytest.fixture
def hub() -> BroadcastHub:
    return BroadcastHub(StatusCache())


@pytest.fixture
def engine(keywords, alerts, hub) -> AlertEngine:
    return AlertEngine(keywords, alerts, hub, escalate_types=["error", "critical"])


class TestAlertEngine:
    async def test_one_alert_per_matching_keyword(self, engine, keywords, alerts):
        await keywords.add_keyword("failed", "error", 3)
        await keywords.add_keyword("disk full", "critical", 5)
        await keywords.add_keyword("timeout", "warning", 2)

        created = await engine.detect_and_alert("backup-db-01", "Backup FAILED: disk full")

        assert len(created) == 2
        assert {(a.keyword, a.alert_type, a.severity) for a in created} == {
            ("failed", "error", 3),
            ("disk full", "critical", 5),
        }
        assert len(alerts.alerts) == 2

    async def test_escalated_types_are_broadcast(self, engine, keywords, hub, drain):
        await keywords.add_keyword("failed", "error", 3)
        await keywords.add_keyword("disk full", "warning", 2)
        subscriber = hub.subscribe()
        await drain(subscriber)

        await engine.detect_and_alert("backup-db-01", "backup failed: disk full", "Nightly DB")

        events = await drain(subscriber)
        assert len(events) == 1
        assert events[0]["type"] == "alert_notification"
        assert events[0]["serverId"] == "alert"
        assert events[0]["alert"]["taskName"] == "Nightly DB"
        assert events[0]["alert"]["alertType"] == "error"
        assert events[0]["alert"]["keyword"] == "failed"

    async def test_task_id_used_when_name_unknown(self, engine, keywords, hub, drain):
        await keywords.add_keyword("critical", "critical", 5)
        subscriber = hub.subscribe()
        await drain(subscriber)

        await engine.detect_and_alert("backup-db-01", "critical failure")

        events = await drain(subscriber)
        assert events[0]["alert"]["taskName"] == "backup-db-01"

    async def test_inactive_rules_ignored(self, engine, keywords, alerts):
        rule = await keywords.add_keyword("error", "error", 3)
        keywords.rules[0] = rule.model_copy(update={"is_active": False})

        assert await engine.detect_and_alert("t", "an error happened") == []
        assert alerts.alerts == {}

    async def test_repeated_message_alerts_again(self, engine, keywords, alerts):
        await keywords.add_keyword("error", "warning", 1)

        await engine.detect_and_alert("t", "error")
        await engine.detect_and_alert("t", "error")

        assert len(alerts.alerts) == 2

    async def test_empty_message_skips_lookup(self, engine, keywords):
        keywords.fail_on.add("list_active")
        assert await engine.detect_and_alert("t", "") == []

    async def test_store_errors_propagate(self, engine, keywords):
        keywords.fail_on.add("list_active")
        with pytest.raises(RuntimeError):
            await engine.detect_and_alert("t", "error")
