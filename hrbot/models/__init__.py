from hrbot.models.bot_user import BotUser

__all__ = ["BotUser"]
