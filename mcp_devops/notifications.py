"""
Chat notifications through Slack and Microsoft Teams incoming webhooks.
"""
import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


def slack_payload(message: str, channel: str, deployment_url: Optional[str] = None) -> Dict[str, Any]:
    attachments = []
    if deployment_url:
        attachments.append({
            "color": "good",
            "fields": [{"title": "Deployment URL", "value": deployment_url, "short": False}],
        })
    return {"channel": channel, "text": message, "attachments": attachments}


def teams_payload(message: str, deployment_url: Optional[str] = None) -> Dict[str, Any]:
    facts = [{"name": "Deployment URL", "value": deployment_url}] if deployment_url else []
    return {
        "@type": "MessageCard",
        "@context": "http://schema.org/extensions",
        "themeColor": "0076D7",
        "summary": "DevOps Pipeline Notification",
        "sections": [{
            "activityTitle": "DevOps Pipeline Update",
            "activitySubtitle": message,
            "facts": facts,
        }],
    }


class Notifier:
    """Posts pipeline updates to the configured webhooks."""

    def __init__(
        self,
        slack_webhook_url: Optional[str] = None,
        teams_webhook_url: Optional[str] = None,
        default_channel: str = "#devops-alerts",
        timeout: int = 30,
    ):
        self.slack_webhook_url = slack_webhook_url
        self.teams_webhook_url = teams_webhook_url
        self.default_channel = default_channel
        self.timeout = timeout

    def _post(self, target: str, url: Optional[str], payload: Dict[str, Any]) -> bool:
        if not url:
            logger.warning(f"⚠️ {target} webhook URL not configured, notification skipped")
            return False
        response = requests.post(url, json=payload, timeout=self.timeout)
        response.raise_for_status()
        logger.info(f"✅ {target} notification sent successfully")
        return True

    def slack(self, message: str, channel: Optional[str] = None, deployment_url: Optional[str] = None) -> bool:
        """Send to Slack. Returns False when no webhook is configured."""
        payload = slack_payload(message, channel or self.default_channel, deployment_url)
        return self._post("Slack", self.slack_webhook_url, payload)

    def teams(self, message: str, deployment_url: Optional[str] = None) -> bool:
        """Send to Teams. Returns False when no webhook is configured."""
        return self._post("Teams", self.teams_webhook_url, teams_payload(message, deployment_url))
