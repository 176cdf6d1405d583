import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import or_
from sqlalchemy.orm import Session

from database import get_db
from errors import Conflict, Forbidden, ValidationError
from models import Event, EventCategory, EventStatus, Registration, User
from providers import Providers, get_providers
from registration_service import get_event_or_404, send_event_reminders
from schemas import (
    DescriptionRequest,
    DescriptionResponse,
    EventCreate,
    EventResponse,
    EventStatusUpdate,
    EventUpdate,
    ReminderResponse,
)
from security import require_admin, require_user

router = APIRouter()
logger = logging.getLogger(__name__)

RECOMMENDATION_POOL_SIZE = 20


def _ensure_owner(event: Event, admin: User) -> None:
    if event.creator_id != admin.id:
        raise Forbidden("Not authorized to modify this event")


@router.get("/events", response_model=List[EventResponse])
def list_events(
    category: Optional[EventCategory] = None,
    status: Optional[EventStatus] = None,
    search: Optional[str] = None,
    featured: Optional[bool] = None,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    query = db.query(Event)
    if category:
        query = query.filter(Event.category == category)
    if status:
        query = query.filter(Event.status == status)
    if featured is not None:
        query = query.filter(Event.is_featured == featured)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Event.title.ilike(like),
            Event.description.ilike(like),
            Event.location.ilike(like),
        ))
    if start_date:
        query = query.filter(Event.date >= start_date)
    if end_date:
        query = query.filter(Event.date <= end_date)
    return query.order_by(Event.created_at.desc(), Event.id.desc()).all()


@router.post("/events/generate-description", response_model=DescriptionResponse)
def generate_description(
    payload: DescriptionRequest,
    user: User = Depends(require_user),
    providers: Providers = Depends(get_providers),
):
    return DescriptionResponse(description=providers.ai.generate_description(payload.keywords))


@router.get("/events/recommendations", response_model=List[EventResponse])
def get_recommendations(
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    candidates = (
        db.query(Event)
        .filter(Event.status == EventStatus.SCHEDULED, Event.date >= date.today())
        .order_by(Event.date.asc(), Event.id.asc())
        .limit(RECOMMENDATION_POOL_SIZE)
        .all()
    )
    if not candidates:
        return []
    history = [
        category.value
        for (category,) in (
            db.query(Event.category)
            .join(Registration, Registration.event_id == Event.id)
            .filter(Registration.user_id == user.id)
            .all()
        )
    ]
    return providers.ai.rank_recommendations(user.interests or [], history, candidates)


@router.get("/events/my-events", response_model=List[EventResponse])
def my_events(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return (
        db.query(Event)
        .filter(Event.creator_id == admin.id)
        .order_by(Event.created_at.desc(), Event.id.desc())
        .all()
    )


@router.get("/events/{event_id}", response_model=EventResponse)
def get_event(event_id: int, db: Session = Depends(get_db)):
    return get_event_or_404(db, event_id)


@router.post("/events", response_model=EventResponse, status_code=201)
def create_event(
    payload: EventCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = Event(**payload.model_dump(), creator_id=admin.id)
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@router.put("/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: int,
    payload: EventUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    _ensure_owner(event, admin)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    capacity = changes.get("capacity")
    if capacity and capacity < event.seats_taken:
        raise ValidationError("Capacity cannot be lower than the seats already taken")
    for field, value in changes.items():
        setattr(event, field, value)
    db.commit()
    db.refresh(event)
    return event


@router.delete("/events/{event_id}")
def delete_event(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    _ensure_owner(event, admin)
    if db.query(Registration.id).filter(Registration.event_id == event.id).first():
        raise Conflict("Events with registrations cannot be deleted; cancel the event instead")
    db.delete(event)
    db.commit()
    logger.info("Event %s deleted by admin %s", event_id, admin.id)
    return {"message": "Event deleted"}


@router.patch("/events/{event_id}/status", response_model=EventResponse)
def update_event_status(
    event_id: int,
    payload: EventStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    _ensure_owner(event, admin)
    event.status = payload.status
    db.commit()
    db.refresh(event)
    return event


@router.patch("/events/{event_id}/featured", response_model=EventResponse)
def toggle_featured(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    event = get_event_or_404(db, event_id)
    event.is_featured = not event.is_featured
    db.commit()
    db.refresh(event)
    return event


@router.post("/events/{event_id}/clone", response_model=EventResponse, status_code=201)
def clone_event(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    source = get_event_or_404(db, event_id)
    clone = Event(
        title=f"{source.title} (Copy)"[:100],
        description=source.description,
        category=source.category,
        date=source.date,
        time=source.time,
        venue=source.venue,
        location=source.location,
        tags=list(source.tags or []),
        price=source.price,
        capacity=source.capacity,
        seats_taken=0,
        status=EventStatus.DRAFT,
        is_featured=False,
        creator_id=admin.id,
    )
    db.add(clone)
    db.commit()
    db.refresh(clone)
    return clone


@router.post("/events/{event_id}/reminders", response_model=ReminderResponse)
def send_reminders(
    event_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
    providers: Providers = Depends(get_providers),
):
    sent, failed = send_event_reminders(db, providers, event_id)
    return ReminderResponse(sent=sent, failed=failed)
