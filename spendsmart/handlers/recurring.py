# spendsmart/handlers/recurring.py
from __future__ import annotations

import logging
import os

from aiogram import Router, F, types
from aiogram.filters import Command
from aiogram.types import CallbackQuery, Message

from spendsmart.core.config import settings
from spendsmart.services.errors import SchedulerError
from spendsmart.services.export_xlsx import build_obligations_xlsx
from spendsmart.services.parser import USAGE, parse_recurring_args
from spendsmart.services.sessions import SessionRegistry
from spendsmart.ui.keyboards import (
    PREFIX,
    card_keyboard,
    list_keyboard,
    parse_cb,
    skip_confirm_keyboard,
    undo_keyboard,
)
from spendsmart.ui.ui import (
    due_run_text,
    error_text,
    money,
    obligation_card,
    obligation_line,
    summary_text,
)

log = logging.getLogger(__name__)
router = Router(name=__name__)

_HELP = (
    "Регулярные платежи и доходы:\n"
    f"{USAGE}\n\n"
    "Пояснения:\n"
    "  • Знак суммы определяет тип: + доход, - расход\n"
    "  • Первая дата платежа = дата начала\n"
    "  • end= дата окончания, remind= за сколько дней напомнить (только расходы)\n"
    "Примеры:\n"
    "  /recurring_add monthly 2024-01-31 -1200 Rent Квартира\n"
    "  /recurring_add weekly 2024-03-01 +150 Freelance Подработка end=2024-06-30\n\n"
    "/recurring_list — список с кнопками\n"
    "/recurring_due — что платить в ближайшие 30 дней\n"
    "/recurring_process — провести всё, что к оплате\n"
    "/recurring_export — выгрузка в XLSX"
)


async def _safe_answer(c: CallbackQuery, text: str | None = None):
    try:
        await c.answer(text or "")
    except Exception as e:
        log.debug("callback answer suppressed: %s", e)


@router.message(Command("recurring_help"))
async def cmd_recurring_help(m: Message) -> None:
    await m.answer(_HELP, parse_mode=None)


@router.message(Command("recurring_add"))
async def cmd_recurring_add(m: Message, sessions: SessionRegistry) -> None:
    try:
        draft = parse_recurring_args(m.text or "")
    except SchedulerError as e:
        await m.answer(f"{e}\n\n{_HELP}", parse_mode=None)
        return

    sess = await sessions.get(m.from_user.id, m.from_user.username)
    try:
        ob = await sess.engine.create(draft)
    except SchedulerError as e:
        await m.answer(error_text(e))
        return
    today = sess.engine.today()
    await m.answer(
        "♻️ Добавлено:\n" + obligation_card(ob, today),
        parse_mode="HTML",
        reply_markup=card_keyboard(ob),
    )


@router.message(Command("recurring_list"))
async def cmd_recurring_list(m: Message, sessions: SessionRegistry) -> None:
    sess = await sessions.get(m.from_user.id, m.from_user.username)
    today = sess.engine.today()
    items = sess.store.active() + sess.store.inactive()
    if not items:
        await m.answer("Правил нет. См. /recurring_help")
        return

    lines = ["♻️ <b>Регулярные операции</b>", summary_text(sess.store.summary(today)), ""]
    lines += [obligation_line(o, today) for o in items]
    pairs = [(f"#{o.id} {o.name}", o.id) for o in items]
    await m.answer("\n".join(lines), parse_mode="HTML", reply_markup=list_keyboard(pairs))


@router.message(Command("recurring_due"))
async def cmd_recurring_due(m: Message, sessions: SessionRegistry) -> None:
    sess = await sessions.get(m.from_user.id, m.from_user.username)
    today = sess.engine.today()
    items = sess.store.upcoming(today, settings.upcoming_days, settings.overdue_grace_days)
    if not items:
        await m.answer(f"Ближайшие {settings.upcoming_days} дней платежей нет.")
        return
    lines = [f"🗓 <b>Ближайшие {settings.upcoming_days} дней:</b>", ""]
    lines += [obligation_line(o, today) for o in items]
    pairs = [(f"#{o.id} {o.name}", o.id) for o in items]
    await m.answer("\n".join(lines), parse_mode="HTML", reply_markup=list_keyboard(pairs))


@router.message(Command("recurring_process"))
async def cmd_recurring_process(m: Message, sessions: SessionRegistry) -> None:
    sess = await sessions.get(m.from_user.id, m.from_user.username)
    run = await sess.processor.process_due()
    if not run.results and not run.skipped_count:
        await m.answer("Сейчас платить нечего.")
        return
    await m.answer(due_run_text(run), parse_mode="HTML")


@router.message(Command("recurring_export"))
async def cmd_recurring_export(m: Message, sessions: SessionRegistry) -> None:
    sess = await sessions.get(m.from_user.id, m.from_user.username)
    items = sess.store.all()
    if not items:
        await m.answer("Нечего выгружать.")
        return
    path = build_obligations_xlsx(items, sess.engine.today(), user_label=m.from_user.username or "")
    try:
        await m.answer_document(types.FSInputFile(path), caption="📊 Регулярные операции (XLSX)")
    finally:
        os.remove(path)


# ==== Callbacks ====

@router.callback_query(F.data.startswith(f"{PREFIX}:"))
async def cb_recurring(c: CallbackQuery, sessions: SessionRegistry) -> None:
    parsed = parse_cb(c.data)
    if parsed is None:
        await _safe_answer(c, "Ошибка id")
        return
    action, ob_id = parsed
    sess = await sessions.get(c.from_user.id, c.from_user.username)
    engine = sess.engine
    today = engine.today()

    if action == "undo":
        if engine.undo(ob_id):
            ob = sess.store.get(ob_id)
            await c.message.edit_text(obligation_card(ob, today), parse_mode="HTML",
                                      reply_markup=card_keyboard(ob))
            await _safe_answer(c, "Вернул")
        else:
            await c.message.edit_reply_markup(reply_markup=None)
            await _safe_answer(c, "Поздно, уже удалено")
        return

    if engine.is_busy(ob_id):
        await _safe_answer(c, "Подожди, операция ещё идёт")
        return

    try:
        if action == "card":
            ob = sess.store.get(ob_id)
            await c.message.edit_text(obligation_card(ob, today), parse_mode="HTML",
                                      reply_markup=card_keyboard(ob))
        elif action == "pay":
            res = await engine.pay(ob_id)
            ob = res.obligation
            await c.message.edit_text(
                f"✅ Проведено {money(ob.amount, ob.kind)} (проводка #{res.posting_id})\n\n"
                + obligation_card(ob, today),
                parse_mode="HTML",
                reply_markup=card_keyboard(ob),
            )
        elif action == "skip":
            ob = sess.store.get(ob_id)
            await c.message.edit_text(
                f"Пропустить платёж «{ob.name}» от {ob.next_occurrence.isoformat()}? Проводки не будет.",
                parse_mode=None,
                reply_markup=skip_confirm_keyboard(ob_id),
            )
        elif action == "skipok":
            ob = await engine.skip(ob_id, confirm=True)
            await c.message.edit_text("⏭ Пропущено.\n\n" + obligation_card(ob, today),
                                      parse_mode="HTML", reply_markup=card_keyboard(ob))
        elif action == "toggle":
            ob = await engine.toggle(ob_id)
            await c.message.edit_text(obligation_card(ob, today), parse_mode="HTML",
                                      reply_markup=card_keyboard(ob))
        elif action == "del":
            pending = await engine.delete(ob_id)
            await c.message.edit_text(
                f"🗑 «{pending.record.name}» удалено. Вернуть можно {engine.undo_seconds:g} сек.",
                parse_mode=None,
                reply_markup=undo_keyboard(ob_id),
            )
        else:
            await _safe_answer(c, "Неизвестное действие")
            return
    except SchedulerError as e:
        await _safe_answer(c)
        await c.message.answer(error_text(e))
        return

    await _safe_answer(c, "OK")
