"""Keyword-driven alert generation for status messages."""

from collections.abc import Iterable

from guardit.core.datetime_utils import to_iso_utc
from guardit.core.logging import get_logger
from guardit.monitor.broadcast import BroadcastHub
from guardit.monitor.events import alert_notification_event
from guardit.schemas.records import AlertInfo, KeywordRuleInfo
from guardit.stores.base import AlertStore, KeywordTable

logger = get_logger(__name__)


def match_keywords(message: str, rules: Iterable[KeywordRuleInfo]) -> list[KeywordRuleInfo]:
    """
    Every rule whose keyword occurs in the message, case-insensitively.

    A keyword appearing twice in ``rules`` only matches once, so one report
    never yields two alerts for the same keyword. Rule order is preserved.
    """
    text = message.casefold()
    seen: set[str] = set()
    matches = []
    for rule in rules:
        needle = rule.keyword.casefold()
        if not needle or needle in seen:
            continue
        if needle in text:
            seen.add(needle)
            matches.append(rule)
    return matches


class AlertEngine:
    """
    Turns keyword matches into alert records.

    Alerts whose type is in ``escalate_types`` are also pushed to the hub as
    an ``alert_notification`` on the alert channel. There is no suppression
    window: the same message re-alerts every time it is reported.
    """

    def __init__(
        self,
        keywords: KeywordTable,
        alerts: AlertStore,
        hub: BroadcastHub,
        escalate_types: Iterable[str] = ("error", "critical"),
        channel: str = "alert",
    ) -> None:
        self._keywords = keywords
        self._alerts = alerts
        self._hub = hub
        self._escalate_types = {t.lower() for t in escalate_types}
        self._channel = channel

    async def detect_and_alert(
        self, task_id: str, message: str, task_name: str | None = None
    ) -> list[AlertInfo]:
        if not message:
            return []

        rules = await self._keywords.list_active()
        created: list[AlertInfo] = []
        for rule in match_keywords(message, rules):
            alert = await self._alerts.create(
                task_id=task_id,
                alert_type=rule.alert_type,
                keyword=rule.keyword,
                message=message,
                severity=rule.severity,
            )
            created.append(alert)
            logger.bind(
                task_id=task_id,
                keyword=rule.keyword,
                alert_type=rule.alert_type,
                severity=rule.severity,
            ).warning("alert_created")

            if alert.alert_type.lower() in self._escalate_types:
                self._escalate(alert, task_name or task_id)

        return created

    def _escalate(self, alert: AlertInfo, task_name: str) -> None:
        self._hub.publish(
            alert_notification_event(
                channel=self._channel,
                task_id=alert.task_id,
                task_name=task_name,
                alert_type=alert.alert_type,
                message=alert.message,
                severity=alert.severity,
                keyword=alert.keyword,
                timestamp=to_iso_utc(alert.created_at),
            )
        )
