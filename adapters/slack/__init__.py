"""
Slack adapter

Operator notifications through an incoming webhook.
Implements INotifier.
"""

from adapters.slack.notifier import SlackNotifier

__all__ = [
    "SlackNotifier",
]
