from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import datetime, date as date_type

from models import EventCategory, EventStatus, PaymentStatus, RegistrationStatus, Sentiment


def _normalize_tags(tags):
    seen = []
    for tag in tags or []:
        cleaned = str(tag or "").strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# Event Schemas
class EventCreate(ApiModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: EventCategory = EventCategory.GENERAL
    date: date_type
    time: str = Field(..., min_length=1, max_length=20)
    venue: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255)
    tags: List[str] = Field(default_factory=list)
    price: float = Field(0, ge=0)
    capacity: int = Field(0, ge=0)
    status: EventStatus = EventStatus.SCHEDULED
    is_featured: bool = False

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, v):
        return _normalize_tags(v)


class EventUpdate(ApiModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[EventCategory] = None
    date: Optional[date_type] = None
    time: Optional[str] = Field(None, min_length=1, max_length=20)
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    tags: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    is_featured: Optional[bool] = None

    @field_validator('tags')
    @classmethod
    def normalize_tags(cls, v):
        return None if v is None else _normalize_tags(v)


class EventStatusUpdate(ApiModel):
    status: EventStatus


class EventResponse(ApiModel):
    id: int
    title: str
    description: str
    category: EventCategory
    date: date_type
    time: str
    venue: str
    location: str
    tags: Optional[List[str]] = None
    price: float
    capacity: int
    seats_taken: int
    status: EventStatus
    is_featured: bool = False
    creator_id: int
    created_at: Optional[datetime] = None


class DescriptionRequest(ApiModel):
    keywords: str = Field(..., min_length=1, max_length=500)


class DescriptionResponse(ApiModel):
    description: str


class ReminderResponse(ApiModel):
    sent: int
    failed: int


# Registration Schemas
class RegistrationCreate(ApiModel):
    event_id: int
    ticket_count: int = Field(1, ge=1)


class RegistrationResponse(ApiModel):
    id: int
    event_id: int
    user_id: int
    user_name: str
    user_email: str
    ticket_count: int
    status: RegistrationStatus
    attended: bool
    check_in_time: Optional[datetime] = None
    qr_code: Optional[str] = None
    created_at: Optional[datetime] = None


class CancelResponse(ApiModel):
    registration: RegistrationResponse


class RegistrationStatusUpdate(ApiModel):
    status: RegistrationStatus

    @field_validator('status', mode='before')
    @classmethod
    def accept_approved_alias(cls, v):
        if isinstance(v, str) and v.strip().lower() == "approved":
            return RegistrationStatus.CONFIRMED
        return v

    @field_validator('status')
    @classmethod
    def validate_admin_status(cls, v):
        if v not in {RegistrationStatus.CONFIRMED, RegistrationStatus.REJECTED}:
            raise ValueError('Status must be confirmed (approved) or rejected')
        return v


class QrVerifyRequest(ApiModel):
    qr_data: str = Field(..., min_length=1)


class QrVerifyResponse(ApiModel):
    valid: bool
    payload: Dict[str, Any]
    registration: RegistrationResponse


# Payment Schemas
class PaymentOrderRequest(ApiModel):
    event_id: int
    amount: Optional[float] = Field(None, gt=0)


class PaymentOrderResponse(ApiModel):
    client_secret: str
    payment_intent_id: str
    amount: float
    currency: str
    publishable_key: Optional[str] = None


class BookingResponse(ApiModel):
    registration: RegistrationResponse
    payment: Optional[PaymentOrderResponse] = None


class PaymentVerifyRequest(ApiModel):
    payment_intent_id: str = Field(..., min_length=1)


class PaymentVerifyResponse(ApiModel):
    success: bool
    status: str
    amount: float


class RefundRequest(ApiModel):
    amount: Optional[float] = Field(None, gt=0)


class RefundResponse(ApiModel):
    id: int
    payment_id: int
    refund_id: str
    amount: Optional[float] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class PaymentResponse(ApiModel):
    id: int
    event_id: int
    registration_id: int
    amount: float
    currency: str
    transaction_id: str
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    refunds: List[RefundResponse] = Field(default_factory=list)


# Feedback Schemas
class FeedbackCreate(ApiModel):
    event_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1, max_length=500)

    @field_validator('comment')
    @classmethod
    def strip_comment(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Comment cannot be blank')
        return v


class FeedbackResponse(ApiModel):
    id: int
    event_id: int
    user_id: int
    user_name: str
    rating: int
    comment: str
    sentiment: Sentiment
    sentiment_score: float
    ai_analysis: Optional[str] = None
    created_at: Optional[datetime] = None


class FeedbackStats(ApiModel):
    total: int
    average_rating: float
    sentiment_breakdown: Dict[str, int]
    rating_breakdown: Dict[str, int]


class EventFeedbackResponse(ApiModel):
    count: int
    stats: FeedbackStats
    data: List[FeedbackResponse]


class FeedbackSummaryResponse(ApiModel):
    summary: str
    total_feedbacks: int


# Chat Schemas
class ChatTurn(ApiModel):
    sender: str
    text: str


class ChatRequest(ApiModel):
    message: str = Field(..., max_length=2000)
    conversation_history: List[ChatTurn] = Field(default_factory=list)

    @field_validator('message')
    @classmethod
    def validate_message(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Message is required')
        return v


class ChatResponse(ApiModel):
    reply: str
    timestamp: datetime


class ChatSuggestionsResponse(ApiModel):
    suggestions: List[str]
