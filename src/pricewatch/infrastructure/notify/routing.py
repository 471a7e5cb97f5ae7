# src/pricewatch/infrastructure/notify/routing.py
"""Picks the first configured channel that can reach a given user."""

import logging
from typing import List

from pricewatch.domain.entities import Alert, TrackedItem, User
from pricewatch.domain.errors import DeliveryError

log = logging.getLogger(__name__)


class RoutingNotifier:
    def __init__(self, channels: List):
        self.channels = channels

    async def send(self, user: User, alert: Alert, item: TrackedItem) -> bool:
        for channel in self.channels:
            if channel.can_deliver(user):
                return await channel.send(user, alert, item)
        raise DeliveryError(f"No notification channel can reach user {user.id}")
