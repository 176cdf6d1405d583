from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import Registration, User
from providers import Providers, get_providers
from schemas import ChatRequest, ChatResponse, ChatSuggestionsResponse
from security import get_optional_user

router = APIRouter()

ADMIN_SUGGESTIONS = [
    "How do I create a new event?",
    "How can I view event analytics?",
    "How do I manage user registrations?",
    "How can I feature an event?",
]

USER_SUGGESTIONS = [
    "What events are happening this week?",
    "How do I book an event?",
    "Can I cancel my booking?",
    "How do I get event recommendations?",
    "What categories of events are available?",
]


def _user_context(db: Session, user: Optional[User]) -> dict:
    if not user:
        return {"is_authenticated": False}
    has_bookings = db.query(Registration.id).filter(Registration.user_id == user.id).first() is not None
    return {
        "is_authenticated": True,
        "user_name": user.name,
        "user_role": user.role.value,
        "has_bookings": has_bookings,
    }


@router.post("/chat/message", response_model=ChatResponse)
def send_message(
    payload: ChatRequest,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    history = [turn.model_dump() for turn in payload.conversation_history]
    reply = providers.ai.chat_reply(payload.message, history, _user_context(db, user))
    return ChatResponse(reply=reply, timestamp=datetime.now(timezone.utc))


@router.get("/chat/suggestions", response_model=ChatSuggestionsResponse)
def get_suggestions(user: Optional[User] = Depends(get_optional_user)):
    suggestions = ADMIN_SUGGESTIONS if user and user.is_admin else USER_SUGGESTIONS
    return ChatSuggestionsResponse(suggestions=list(suggestions))
