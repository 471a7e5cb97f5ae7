# src/pricewatch/infrastructure/notify/telegram.py
"""
Telegram alert channel.

Uses a pooled HTTPXRequest so a burst of alerts does not open one connection
per message, and retries flood-control and network errors a few times before
reporting failure.
"""

import asyncio
import logging
from typing import Optional, Union

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import BadRequest, RetryAfter, TimedOut, NetworkError, TelegramError
from telegram.request import HTTPXRequest

from pricewatch.config import settings
from pricewatch.domain.entities import Alert, TrackedItem, User
from pricewatch.domain.errors import DeliveryError
from .messages import alert_html

log = logging.getLogger(__name__)


class TelegramNotifier:

    def __init__(self, bot_token: Optional[str] = None, bot: Optional[Bot] = None):
        if bot is None:
            token = bot_token or settings.TELEGRAM_BOT_TOKEN
            if not token:
                raise ValueError("Telegram bot token is required")
            request = HTTPXRequest(
                connection_pool_size=20,
                read_timeout=10.0,
                write_timeout=10.0,
                connect_timeout=5.0
            )
            bot = Bot(token=token, request=request)
        self.bot = bot

    def can_deliver(self, user: User) -> bool:
        return bool(user.telegram_chat_id)

    async def _send_text(self, chat_id: Union[int, str], text: str, retries: int = 3) -> None:
        """Robust send with retries"""
        try:
            await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=ParseMode.HTML,
                disable_web_page_preview=True
            )
        except RetryAfter as e:
            if retries <= 0:
                raise DeliveryError(f"Telegram flood limit for {chat_id}") from e
            log.warning(f"Flood limit. Sleeping {e.retry_after}s")
            delay = e.retry_after.total_seconds() if hasattr(e.retry_after, "total_seconds") else e.retry_after
            await asyncio.sleep(delay)
            await self._send_text(chat_id, text, retries - 1)
        except BadRequest as e:
            # BadRequest subclasses NetworkError; never retried
            raise DeliveryError(f"Telegram rejected message for {chat_id}: {e}") from e
        except (TimedOut, NetworkError) as e:
            if retries > 0:
                await asyncio.sleep(1)
                return await self._send_text(chat_id, text, retries - 1)
            raise DeliveryError(f"Telegram network failure for {chat_id}: {e}") from e
        except TelegramError as e:
            raise DeliveryError(f"Telegram rejected message for {chat_id}: {e}") from e

    async def send(self, user: User, alert: Alert, item: TrackedItem) -> bool:
        if not self.can_deliver(user):
            raise DeliveryError(f"User {user.id} has no Telegram chat id")
        await self._send_text(user.telegram_chat_id, alert_html(alert, item))
        log.info("Telegram alert %s delivered to user %s", alert.id, user.id)
        return True
