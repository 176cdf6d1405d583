import logging
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from errors import Conflict, Forbidden, NotFound
from models import Feedback, Registration, Sentiment, User
from notifications import NotificationKind
from providers import Providers, get_providers
from registration_service import get_event_or_404
from schemas import (
    EventFeedbackResponse,
    FeedbackCreate,
    FeedbackResponse,
    FeedbackStats,
    FeedbackSummaryResponse,
)
from security import require_admin, require_user

router = APIRouter()
logger = logging.getLogger(__name__)

FEEDBACK_POINTS = 5
NO_FEEDBACK_SUMMARY = "No feedback has been submitted for this event yet."


def feedback_stats(feedbacks: Sequence[Feedback]) -> FeedbackStats:
    total = len(feedbacks)
    average = round(sum(f.rating for f in feedbacks) / total, 2) if total else 0.0
    sentiments = {s.value: 0 for s in Sentiment}
    ratings = {str(r): 0 for r in range(1, 6)}
    for feedback in feedbacks:
        sentiments[feedback.sentiment.value] += 1
        ratings[str(feedback.rating)] += 1
    return FeedbackStats(
        total=total,
        average_rating=average,
        sentiment_breakdown=sentiments,
        rating_breakdown=ratings,
    )


@router.post("/feedback", response_model=FeedbackResponse, status_code=201)
def submit_feedback(
    payload: FeedbackCreate,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    event = get_event_or_404(db, payload.event_id)
    attended = db.query(Registration).filter(
        Registration.event_id == event.id,
        Registration.user_id == user.id,
        Registration.attended.is_(True),
    ).first()
    if not attended:
        raise Forbidden("You can only give feedback for events you attended")
    if db.query(Feedback).filter(Feedback.event_id == event.id, Feedback.user_id == user.id).first():
        raise Conflict("Feedback already submitted for this event")

    analysis = providers.ai.analyze_sentiment(payload.comment, payload.rating)
    feedback = Feedback(
        event_id=event.id,
        user_id=user.id,
        user_name=user.name,
        rating=payload.rating,
        comment=payload.comment,
        sentiment=Sentiment(analysis["sentiment"]),
        sentiment_score=analysis["score"],
        ai_analysis=analysis.get("summary"),
    )
    db.add(feedback)
    user.points = int(user.points or 0) + FEEDBACK_POINTS
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise Conflict("Feedback already submitted for this event") from exc
    db.refresh(feedback)

    providers.notifier.send(
        NotificationKind.FEEDBACK_THANKS,
        user.email,
        {"user_name": user.name, "event_title": event.title},
    )
    return feedback


@router.get("/feedback", response_model=List[FeedbackResponse])
def list_feedback(
    sentiment: Optional[Sentiment] = None,
    rating: Optional[int] = Query(None, ge=1, le=5),
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    query = db.query(Feedback)
    if sentiment:
        query = query.filter(Feedback.sentiment == sentiment)
    if rating:
        query = query.filter(Feedback.rating == rating)
    return query.order_by(Feedback.created_at.desc(), Feedback.id.desc()).limit(limit).all()


@router.get("/feedback/my-feedbacks", response_model=List[FeedbackResponse])
def my_feedbacks(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    return (
        db.query(Feedback)
        .filter(Feedback.user_id == user.id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )


@router.get("/feedback/event/{event_id}", response_model=EventFeedbackResponse)
def event_feedback(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    feedbacks = (
        db.query(Feedback)
        .filter(Feedback.event_id == event.id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )
    return EventFeedbackResponse(
        count=len(feedbacks),
        stats=feedback_stats(feedbacks),
        data=[FeedbackResponse.model_validate(f) for f in feedbacks],
    )


@router.get("/feedback/event/{event_id}/summary", response_model=FeedbackSummaryResponse)
def event_feedback_summary(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    event = get_event_or_404(db, event_id)
    feedbacks = db.query(Feedback).filter(Feedback.event_id == event.id).all()
    if not feedbacks:
        return FeedbackSummaryResponse(summary=NO_FEEDBACK_SUMMARY, total_feedbacks=0)
    return FeedbackSummaryResponse(
        summary=providers.ai.summarize_feedback(feedbacks),
        total_feedbacks=len(feedbacks),
    )


@router.delete("/feedback/{feedback_id}")
def delete_feedback(
    feedback_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    feedback = db.query(Feedback).filter(Feedback.id == feedback_id).first()
    if not feedback:
        raise NotFound("Feedback not found")
    db.delete(feedback)
    db.commit()
    logger.info("Feedback %s deleted by admin %s", feedback_id, admin.id)
    return {"message": "Feedback deleted"}
