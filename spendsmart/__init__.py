# spendsmart: регулярные платежи и доходы (Telegram-бот)
__version__ = "0.3.0"
