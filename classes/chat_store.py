# classes/chat_store.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from classes import app_config
from classes.app_config import logger
from classes.entities import Base, Conversation, Export, Message, User, UserSettings


def _row_to_dict(row) -> dict[str, Any]:
    out = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, Decimal):
            value = float(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        out[column.key] = value
    return out


class ChatStore:
    """
    Store of record for users, settings, conversations, messages and exports.
    One short-lived session per call; rows come back as plain dicts.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.SessionFactory = session_factory

    def create_schema(self) -> None:
        session = self.SessionFactory()
        try:
            Base.metadata.create_all(session.get_bind())
        finally:
            session.close()

    # -----------------------
    # Users
    # -----------------------

    def upsert_user(self, open_id: str, **fields) -> dict:
        if not open_id:
            raise ValueError("User open_id is required for upsert")

        session = self.SessionFactory()
        try:
            user = session.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()
            if user is None:
                user = User(open_id=open_id)
                session.add(user)

            for key in ("name", "email", "login_method"):
                if key in fields:
                    setattr(user, key, fields[key])

            if fields.get("role") is not None:
                user.role = fields["role"]
            elif app_config.OWNER_OPEN_ID and open_id == app_config.OWNER_OPEN_ID:
                user.role = "admin"

            user.last_signed_in = fields.get("last_signed_in") or datetime.now(timezone.utc)
            session.commit()
            return _row_to_dict(user)
        except Exception as e:
            session.rollback()
            logger.error(f"[Database] Failed to upsert user: {e}")
            raise
        finally:
            session.close()

    def get_user_by_open_id(self, open_id: str) -> dict | None:
        session = self.SessionFactory()
        try:
            user = session.execute(select(User).where(User.open_id == open_id)).scalar_one_or_none()
            return _row_to_dict(user) if user else None
        finally:
            session.close()

    # -----------------------
    # Settings
    # -----------------------

    def get_user_settings(self, user_id: int) -> dict | None:
        session = self.SessionFactory()
        try:
            row = session.execute(
                select(UserSettings).where(UserSettings.user_id == user_id)
            ).scalar_one_or_none()
            return _row_to_dict(row) if row else None
        finally:
            session.close()

    def upsert_user_settings(self, user_id: int, settings: dict) -> dict:
        session = self.SessionFactory()
        try:
            row = session.execute(
                select(UserSettings).where(UserSettings.user_id == user_id)
            ).scalar_one_or_none()
            if row is None:
                row = UserSettings(user_id=user_id)
                session.add(row)
            for key in ("temperature", "top_p"):
                if settings.get(key) is not None:
                    setattr(row, key, Decimal(str(settings[key])))
            for key in ("top_k", "max_output_tokens"):
                if settings.get(key) is not None:
                    setattr(row, key, int(settings[key]))
            session.commit()
            return _row_to_dict(row)
        finally:
            session.close()

    # -----------------------
    # Conversations
    # -----------------------

    def create_conversation(self, user_id: int, title: str | None = None) -> dict:
        session = self.SessionFactory()
        try:
            conversation = Conversation(user_id=user_id, title=title or "New Conversation")
            session.add(conversation)
            session.commit()
            return _row_to_dict(conversation)
        finally:
            session.close()

    def get_conversations(self, user_id: int) -> list[dict]:
        session = self.SessionFactory()
        try:
            rows = session.execute(
                select(Conversation)
                .where(Conversation.user_id == user_id)
                .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            ).scalars().all()
            return [_row_to_dict(r) for r in rows]
        finally:
            session.close()

    def get_conversation(self, conversation_id: int, user_id: int) -> dict | None:
        session = self.SessionFactory()
        try:
            row = session.execute(
                select(Conversation).where(
                    and_(Conversation.id == conversation_id, Conversation.user_id == user_id)
                )
            ).scalar_one_or_none()
            return _row_to_dict(row) if row else None
        finally:
            session.close()

    def update_conversation_title(self, conversation_id: int, title: str) -> None:
        session = self.SessionFactory()
        try:
            row = session.get(Conversation, conversation_id)
            if row is None:
                raise ValueError("Conversation not found")
            row.title = title
            session.commit()
        finally:
            session.close()

    def touch_conversation(self, conversation_id: int) -> None:
        session = self.SessionFactory()
        try:
            row = session.get(Conversation, conversation_id)
            if row is not None:
                row.updated_at = datetime.now(timezone.utc)
                session.commit()
        finally:
            session.close()

    def delete_conversation(self, conversation_id: int) -> None:
        session = self.SessionFactory()
        try:
            session.query(Message).filter(Message.conversation_id == conversation_id).delete()
            session.query(Conversation).filter(Conversation.id == conversation_id).delete()
            session.commit()
        finally:
            session.close()

    # -----------------------
    # Messages
    # -----------------------

    def create_message(self, **fields) -> dict:
        session = self.SessionFactory()
        try:
            message = Message(**fields)
            session.add(message)
            session.commit()
            return _row_to_dict(message)
        finally:
            session.close()

    def get_messages(self, conversation_id: int) -> list[dict]:
        session = self.SessionFactory()
        try:
            rows = session.execute(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.id.asc())
            ).scalars().all()
            return [_row_to_dict(r) for r in rows]
        finally:
            session.close()

    # -----------------------
    # Exports
    # -----------------------

    def get_exports(self, user_id: int, conversation_id: int) -> list[dict]:
        session = self.SessionFactory()
        try:
            rows = session.execute(
                select(Export)
                .where(and_(Export.user_id == user_id, Export.conversation_id == conversation_id))
                .order_by(Export.id.asc())
            ).scalars().all()
            return [_row_to_dict(r) for r in rows]
        finally:
            session.close()

    def create_export(
        self,
        user_id: int,
        conversation_id: int,
        format: str,
        file_url: str,
        file_name: str,
    ) -> dict:
        session = self.SessionFactory()
        try:
            row = Export(
                user_id=user_id,
                conversation_id=conversation_id,
                format=format,
                file_url=file_url,
                file_name=file_name,
            )
            session.add(row)
            session.commit()
            return _row_to_dict(row)
        finally:
            session.close()
