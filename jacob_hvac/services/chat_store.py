"""Persistent chat transcripts, one row per message."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from jacob_hvac.errors import NotFoundError, ValidationError
from jacob_hvac.models import ChatMessage, ChatSession, Customer, MessageSender

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StartedSession:
    session_id: int
    customer_id: int
    first_name: str


def split_name(full_name: str) -> tuple[str, str]:
    """Split at the first whitespace run: ``"Ann Marie Lee"`` -> ``("Ann", "Marie Lee")``."""
    parts = full_name.strip().split(maxsplit=1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


class ChatSessionStore:
    def __init__(self, session: Session):
        self._session = session

    def resolve_customer(self, name: str, phone: str, email: str | None) -> Customer:
        """Find the customer by exact phone match, creating one if needed."""
        customer = self._session.execute(
            select(Customer).where(Customer.phone == phone)
        ).scalar_one_or_none()
        if customer is not None:
            return customer

        first_name, last_name = split_name(name)
        customer = Customer(first_name=first_name, last_name=last_name, phone=phone, email=email)
        self._session.add(customer)
        self._session.flush()
        logger.info("Created customer %s for phone %s", customer.id, phone)
        return customer

    def start_session(
        self,
        customer_name: str,
        customer_phone: str,
        customer_email: str | None = None,
    ) -> StartedSession:
        customer = self.resolve_customer(customer_name, customer_phone, customer_email)
        chat = ChatSession(customer_id=customer.id)
        self._session.add(chat)
        self._session.commit()
        logger.info("Started chat session %s for customer %s", chat.id, customer.id)
        return StartedSession(
            session_id=chat.id,
            customer_id=customer.id,
            first_name=split_name(customer_name)[0] or customer.first_name,
        )

    def _require_session(self, session_id: int) -> ChatSession:
        chat = self._session.get(ChatSession, session_id)
        if chat is None:
            raise NotFoundError(f"Chat session {session_id} not found.")
        return chat

    def append_message(self, session_id: int, sender: str, text: str) -> ChatMessage:
        try:
            sender = MessageSender(sender).value
        except ValueError as exc:
            raise ValidationError(
                f"Invalid sender {sender!r}: expected 'customer' or 'assistant'."
            ) from exc
        self._require_session(session_id)

        message = ChatMessage(session_id=session_id, sender=sender, text=text)
        self._session.add(message)
        self._session.commit()
        return message

    def get_history(self, session_id: int) -> list[ChatMessage]:
        self._require_session(session_id)
        return list(
            self._session.execute(
                select(ChatMessage)
                .where(ChatMessage.session_id == session_id)
                .order_by(ChatMessage.id.asc())
            ).scalars()
        )
