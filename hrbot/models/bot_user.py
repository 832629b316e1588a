from sqlalchemy import Column, DateTime, Text

from hrbot.database import Base


class BotUser(Base):
    """Binds a Slack user to their OpenAI assistant thread."""

    __tablename__ = "bot_users"

    slack_user_id = Column(Text, primary_key=True)
    thread_id = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
