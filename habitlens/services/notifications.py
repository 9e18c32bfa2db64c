#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Notifications
Каналы доставки сообщений и диспетчер уведомлений

Диспетчер делает ровно одну попытку доставки. Запись об уведомлении сохраняется
только после успешной отправки; повторных попыток нет.

Версия: 1.0.0
"""

import abc
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional
import logging

import aiohttp
from telegram import Bot

from ..config import NotificationConfig
from ..core.database import NotificationStore
from ..core.models import NotificationMessage, NotificationType

logger = logging.getLogger(__name__)

# ===== EXCEPTIONS =====

class ChannelDeliveryError(Exception):
    """Канал не смог доставить сообщение"""
    pass

# ===== TEMPLATES =====

def render_reminder(habit_name: str) -> str:
    return f'🔔 Habit Reminder: Don\'t forget to complete "{habit_name}" today! You\'ve got this! 💪'

def render_streak_alert(habit_name: str, streak_days: int) -> str:
    return (
        f'🔥 Amazing! You\'ve maintained "{habit_name}" for {streak_days} days in a row! '
        f'Keep the momentum going! 🚀'
    )

def render_encouragement(text: str) -> str:
    return text.strip()

# ===== CHANNELS =====

@dataclass
class DeliveryReceipt:
    """Подтверждение доставки от канала"""
    channel: str
    address: str
    message_id: Optional[str] = None
    delivered_at: str = field(default_factory=lambda: datetime.now().isoformat())

class MessagingChannel(abc.ABC):
    """Канал доставки сообщений"""

    name = "channel"

    @abc.abstractmethod
    def normalize_address(self, address: str) -> str:
        """Привести адрес к схеме канала"""

    @abc.abstractmethod
    async def send(self, address: str, body: str) -> DeliveryReceipt:
        """Отправить сообщение; при сбое выбрасывает исключение"""

    async def close(self) -> None:
        return None

class WhatsAppChannel(MessagingChannel):
    """WhatsApp через Twilio Messages API"""

    name = "whatsapp"
    PREFIX = "whatsapp:"
    API_URL = "https://api.twilio.com/2010-04-01/Accounts/{account_sid}/Messages.json"

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 from_address: str = "whatsapp:+14155238886",
                 session_factory: Optional[Callable[[], Any]] = None):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_address = self.normalize_address(from_address)
        self.session_factory = session_factory or aiohttp.ClientSession

        if not (account_sid and auth_token):
            logger.warning("Twilio credentials not configured, WhatsApp delivery will fail")

    def normalize_address(self, address: str) -> str:
        address = address.strip()
        if address.startswith(self.PREFIX):
            return address
        return f"{self.PREFIX}{address}"

    async def send(self, address: str, body: str) -> DeliveryReceipt:
        if not (self.account_sid and self.auth_token):
            raise ChannelDeliveryError("Twilio credentials are not configured")

        url = self.API_URL.format(account_sid=self.account_sid)
        payload = {
            'From': self.from_address,
            'To': address,
            'Body': body
        }

        async with self.session_factory() as session:
            auth = aiohttp.BasicAuth(self.account_sid, self.auth_token)
            async with session.post(url, data=payload, auth=auth) as resp:
                if resp.status >= 400:
                    detail = await resp.text()
                    raise ChannelDeliveryError(f"Twilio returned {resp.status}: {detail[:200]}")
                data = await resp.json()

        return DeliveryReceipt(channel=self.name, address=address, message_id=data.get('sid'))

class TelegramChannel(MessagingChannel):
    """Telegram через Bot API"""

    name = "telegram"
    PREFIX = "telegram:"

    def __init__(self, token: Optional[str] = None, bot: Optional[Any] = None):
        self.token = token
        self.bot = bot
        self._initialized = bot is not None

        if bot is None and not token:
            logger.warning("Telegram bot token not configured, Telegram delivery will fail")

    def normalize_address(self, address: str) -> str:
        address = address.strip()
        if address.startswith(self.PREFIX):
            address = address[len(self.PREFIX):]
        return address

    async def _ensure_bot(self) -> Any:
        if self._initialized:
            return self.bot
        if not self.token:
            raise ChannelDeliveryError("Telegram bot token is not configured")

        self.bot = Bot(token=self.token)
        await self.bot.initialize()
        self._initialized = True
        return self.bot

    async def send(self, address: str, body: str) -> DeliveryReceipt:
        bot = await self._ensure_bot()
        message = await bot.send_message(chat_id=address, text=body)
        message_id = getattr(message, 'message_id', None)
        return DeliveryReceipt(
            channel=self.name,
            address=address,
            message_id=str(message_id) if message_id is not None else None
        )

    async def close(self) -> None:
        if self._initialized and self.token and self.bot is not None:
            await self.bot.shutdown()
            self._initialized = False

def create_channel(config: NotificationConfig) -> MessagingChannel:
    """Создать канал доставки по конфигурации"""
    if config.channel == "telegram":
        return TelegramChannel(token=config.telegram_bot_token)

    return WhatsAppChannel(
        account_sid=config.twilio_account_sid,
        auth_token=config.twilio_auth_token,
        from_address=config.twilio_whatsapp_from
    )

# ===== DISPATCHER =====

@dataclass
class DispatcherStats:
    """Статистика отправки"""
    sent: int = 0
    failed: int = 0
    rejected: int = 0

    def to_dict(self):
        return {'sent': self.sent, 'failed': self.failed, 'rejected': self.rejected}

class NotificationDispatcher:
    """Отправка уведомлений с сохранением записи об успешной доставке"""

    def __init__(self, channel: MessagingChannel, store: NotificationStore, send_timeout: float = 15.0):
        self.channel = channel
        self.store = store
        self.send_timeout = send_timeout
        self.stats = DispatcherStats()

    async def send_and_record(self, notification_type: NotificationType, user_id: int,
                              habit_id: Optional[int], address: Optional[str], message: Optional[str]) -> bool:
        """
        Отправить сообщение и сохранить запись.

        Возвращает True только при успешной доставке. Ошибки хранилища при сохранении
        записи не перехватываются.
        """
        if not address or not address.strip() or not message or not message.strip():
            self.stats.rejected += 1
            logger.warning(f"⚠️ Notification for user {user_id} rejected: address and message are required")
            return False

        target = self.channel.normalize_address(address)

        try:
            receipt = await asyncio.wait_for(
                self.channel.send(target, message),
                timeout=self.send_timeout
            )
        except Exception as e:
            self.stats.failed += 1
            logger.error(f"❌ Failed to deliver {NotificationType(notification_type).value} "
                         f"to user {user_id} via {self.channel.name}: {e!r}")
            return False

        self.stats.sent += 1
        logger.info(f"📨 {self.channel.name} notification sent to user {user_id} ({receipt.message_id})")

        await self.store.save_notification(NotificationMessage(
            type=notification_type,
            message=message,
            user_id=user_id,
            habit_id=habit_id
        ))
        return True

    async def send_reminder(self, user_id: int, habit_id: int, habit_name: str, address: str) -> bool:
        return await self.send_and_record(
            NotificationType.REMINDER, user_id, habit_id, address, render_reminder(habit_name)
        )

    async def send_streak_alert(self, user_id: int, habit_id: int, habit_name: str,
                                streak_days: int, address: str) -> bool:
        return await self.send_and_record(
            NotificationType.STREAK_ALERT, user_id, habit_id, address,
            render_streak_alert(habit_name, streak_days)
        )

    async def send_encouragement(self, user_id: int, text: str, address: str,
                                 habit_id: Optional[int] = None) -> bool:
        return await self.send_and_record(
            NotificationType.ENCOURAGEMENT, user_id, habit_id, address, render_encouragement(text or "")
        )

    async def close(self) -> None:
        await self.channel.close()


__all__ = [
    'ChannelDeliveryError',
    'DeliveryReceipt',
    'MessagingChannel',
    'WhatsAppChannel',
    'TelegramChannel',
    'create_channel',
    'render_reminder',
    'render_streak_alert',
    'render_encouragement',
    'DispatcherStats',
    'NotificationDispatcher'
]
