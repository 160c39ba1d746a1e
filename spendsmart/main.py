# spendsmart/main.py
from __future__ import annotations

import asyncio
import logging
from contextlib import suppress

from aiogram import Bot, Dispatcher
from aiogram.enums import ParseMode
from aiogram.types import BotCommand
from aiogram.client.default import DefaultBotProperties

from spendsmart.core.config import settings
from spendsmart.core.logging import setup_logging
from spendsmart.core.db import init_db
from spendsmart.core.scheduler import UndoScheduler, build_scheduler, start_scheduler
from spendsmart.services.sessions import SessionRegistry


async def _set_bot_commands(bot: Bot) -> None:
    commands = [
        BotCommand(command="start", description="Запуск и онбординг"),
        BotCommand(command="help", description="Что я умею"),
        BotCommand(command="recurring_add", description="Новый регулярный платёж/доход"),
        BotCommand(command="recurring_list", description="Все регулярные операции"),
        BotCommand(command="recurring_due", description="Ближайшие 30 дней"),
        BotCommand(command="recurring_process", description="Провести всё, что к оплате"),
        BotCommand(command="recurring_export", description="Экспорт XLSX"),
        BotCommand(command="recurring_help", description="Справка по формату"),
        BotCommand(command="cancel", description="Отмена"),
    ]
    await bot.set_my_commands(commands)


def _register_handlers(dp: Dispatcher) -> list[str]:
    from spendsmart.handlers import setup as setup_handlers
    return setup_handlers(dp)


async def main() -> None:
    setup_logging(settings.log_level)
    await init_db()

    bot = Bot(
        token=settings.require_bot_token(),
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )

    async def notify(tg_id: int, text: str) -> None:
        await bot.send_message(chat_id=tg_id, text=text, parse_mode=None)

    scheduler = build_scheduler()
    sessions = SessionRegistry(UndoScheduler(scheduler), notify=notify)

    dp = Dispatcher()
    dp["sessions"] = sessions  # попадает в хендлеры аргументом sessions

    loaded = _register_handlers(dp)
    logging.info("Handlers loaded: %s", ", ".join(loaded))
    await _set_bot_commands(bot)

    opened = await sessions.open_all()
    logging.info("Sessions opened: %s", opened)
    start_scheduler(scheduler, sessions)

    logging.info("Bot starting polling…")
    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        # незакрытые окна undo: удаляем сразу, чтобы не потерять
        await sessions.close()
        with suppress(Exception):
            scheduler.shutdown(wait=False)
        with suppress(Exception):
            await bot.session.close()
        logging.info("Bot stopped.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
