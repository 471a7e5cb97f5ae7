"""Notification backends."""

from .email import EmailNotifier
from .routing import RoutingNotifier
from .telegram import TelegramNotifier

__all__ = ["EmailNotifier", "RoutingNotifier", "TelegramNotifier"]
