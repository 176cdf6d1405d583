#!/usr/bin/env python3
from datetime import date, timedelta

from auth import create_user_token
from database import Base, SessionLocal, engine
from models import Event, EventCategory, EventStatus, User, UserRole

DEMO_EVENTS = [
    {
        'title': 'Intro to Machine Learning',
        'description': 'Hands-on workshop covering the basics of supervised learning with real datasets.',
        'category': EventCategory.TECHNOLOGY,
        'days_ahead': 1,
        'time': '10:00 AM',
        'venue': 'Lab 3',
        'location': 'Main Campus',
        'tags': ['ml', 'workshop'],
        'price': 0,
        'capacity': 40,
        'is_featured': True,
    },
    {
        'title': 'Startup Pitch Night',
        'description': 'Student founders pitch to a panel of investors. Networking dinner included.',
        'category': EventCategory.BUSINESS,
        'days_ahead': 7,
        'time': '6:30 PM',
        'venue': 'Auditorium',
        'location': 'Main Campus',
        'tags': ['startups', 'networking'],
        'price': 249,
        'capacity': 120,
        'is_featured': False,
    },
    {
        'title': 'Acoustic Evening',
        'description': 'An open-air evening of acoustic performances by campus bands.',
        'category': EventCategory.MUSIC,
        'days_ahead': 14,
        'time': '7:00 PM',
        'venue': 'Open Air Theatre',
        'location': 'North Campus',
        'tags': ['music', 'live'],
        'price': 99,
        'capacity': 0,
        'is_featured': False,
    },
]


def ensure_user(db, email: str, name: str, role: UserRole, interests=None) -> User:
    row = db.query(User).filter(User.email == email).first()
    if row:
        return row
    row = User(email=email, name=name, role=role, interests=interests or [])
    db.add(row)
    db.flush()
    return row


def ensure_event(db, creator: User, spec: dict) -> Event:
    row = db.query(Event).filter(Event.title == spec['title']).first()
    if row:
        return row
    row = Event(
        title=spec['title'],
        description=spec['description'],
        category=spec['category'],
        date=date.today() + timedelta(days=spec['days_ahead']),
        time=spec['time'],
        venue=spec['venue'],
        location=spec['location'],
        tags=spec['tags'],
        price=spec['price'],
        capacity=spec['capacity'],
        status=EventStatus.SCHEDULED,
        is_featured=spec['is_featured'],
        creator_id=creator.id,
    )
    db.add(row)
    db.flush()
    return row


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        admin = ensure_user(db, 'admin@stagedeck.local', 'Demo Admin', UserRole.ADMIN)
        user = ensure_user(db, 'user@stagedeck.local', 'Demo User', UserRole.USER, ['Technology', 'Music'])
        events = [ensure_event(db, admin, spec) for spec in DEMO_EVENTS]
        db.commit()

        print('Seeded demo data:')
        print(f'  - events: {[event.id for event in events]}')
        print(f'  - admin token: {create_user_token(admin)}')
        print(f'  - user token: {create_user_token(user)}')
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    main()
