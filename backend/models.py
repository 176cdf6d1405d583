from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Date, Enum as SQLEnum, ForeignKey, Text, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
import enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class EventCategory(str, enum.Enum):
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    MUSIC = "Music"
    ART = "Art"
    FOOD = "Food"
    HEALTH = "Health"
    NETWORKING = "Networking"
    GENERAL = "General"


class EventStatus(str, enum.Enum):
    SCHEDULED = "Scheduled"
    DRAFT = "Draft"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class RegistrationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    CREATED = "created"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Sentiment(str, enum.Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


# Registrations in these states hold seats on the event.
SEAT_HOLDING_STATUSES = (RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False)
    department = Column(String(150), nullable=True)
    interests = Column(JSON, nullable=True)
    points = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SQLEnum(EventCategory), default=EventCategory.GENERAL, nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(20), nullable=False)
    venue = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False)
    tags = Column(JSON, nullable=True)
    price = Column(Float, default=0, nullable=False)
    capacity = Column(Integer, default=0, nullable=False)  # 0 means unlimited
    seats_taken = Column(Integer, default=0, nullable=False)
    status = Column(SQLEnum(EventStatus), default=EventStatus.SCHEDULED, nullable=False, index=True)
    is_featured = Column(Boolean, default=False)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User")

    @property
    def is_free(self) -> bool:
        return not self.price or self.price <= 0


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    user_email = Column(String(255), nullable=False)
    ticket_count = Column(Integer, default=1, nullable=False)
    status = Column(SQLEnum(RegistrationStatus), default=RegistrationStatus.PENDING, nullable=False, index=True)
    attended = Column(Boolean, default=False, nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)
    qr_code = Column(Text, nullable=True)  # PNG data URL
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event")
    user = relationship("User")
    payments = relationship("Payment", back_populates="registration")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    registration_id = Column(Integer, ForeignKey("registrations.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(10), nullable=False, default="inr")
    transaction_id = Column(String(255), unique=True, index=True, nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.CREATED, nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    event = relationship("Event")
    registration = relationship("Registration", back_populates="payments")
    refunds = relationship("Refund", back_populates="payment", order_by="Refund.id")


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False, index=True)
    refund_id = Column(String(255), unique=True, nullable=False)
    amount = Column(Float, nullable=True)  # null means full refund
    status = Column(String(50), nullable=True)
    requested_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    payment = relationship("Payment", back_populates="refunds")


class Feedback(Base):
    __tablename__ = "feedback"
    __table_args__ = (UniqueConstraint("event_id", "user_id", name="uq_feedback_event_user"),)

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String(500), nullable=False)
    sentiment = Column(SQLEnum(Sentiment), default=Sentiment.NEUTRAL, nullable=False, index=True)
    sentiment_score = Column(Float, default=0, nullable=False)
    ai_analysis = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    event = relationship("Event")
