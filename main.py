#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
HabitLens v1.0 - Точка входа
Запуск планировщика уведомлений и сервисов инсайтов

Версия: 1.0.0
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

from habitlens.config import ConfigError, get_config
from habitlens.services import ServiceManager
from habitlens.services.scheduler import MILESTONE_JOB_ID, REMINDER_JOB_ID
from habitlens.utils.logger import setup_logging

logger = logging.getLogger("habitlens")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='HabitLens: планировщик уведомлений о привычках')
    parser.add_argument(
        '--run-once',
        choices=[REMINDER_JOB_ID, MILESTONE_JOB_ID],
        help='Выполнить одно задание сразу и выйти'
    )
    parser.add_argument('--health', action='store_true', help='Вывести состояние сервисов и выйти')
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    """Главная функция запуска"""
    args = parse_args(argv)

    config = get_config()
    config.ensure_directories()
    setup_logging(config)

    if config.database.path is None:
        config.database.path = config.data_dir / "habitlens.json"

    logger.info(f"🚀 HabitLens starting ({config.environment.value})")
    manager = ServiceManager(config)

    if args.health:
        try:
            print(json.dumps(manager.health_check(), ensure_ascii=False, indent=2))
            return 0
        finally:
            await manager.stop()

    if args.run_once:
        try:
            if args.run_once == REMINDER_JOB_ID:
                report = await manager.scheduler.run_daily_reminders()
            else:
                report = await manager.scheduler.run_milestone_check()
            print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
            return 0 if report.ok else 1
        finally:
            await manager.stop()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler(signum, frame):
        """Обработчик сигналов для graceful shutdown"""
        logger.info(f"📢 Received signal {signum}, shutting down...")
        loop.call_soon_threadsafe(stop_event.set)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    async with manager:
        await stop_event.wait()

    return 0


# ===== ТОЧКА ВХОДА =====

if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except ConfigError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("👋 Stopped by user")
    except Exception as e:
        logger.error(f"💥 Fatal error: {e}")
        sys.exit(1)
