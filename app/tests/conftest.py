import itertools
import os
import tempfile

# Keep the module-level engine away from the working directory
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(tempfile.mkdtemp(prefix="planner-tests-"), "app.db")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.db.base import Base
from app.db.models import User, Course, Assignment, Milestone, CalendarEvent
from app.utils.timeutils import utcnow


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'planner.db'}",
        connect_args={"check_same_thread": False, "timeout": 30}
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make():
        n = next(counter)
        user = User(username=f"student{n}", email=f"student{n}@example.edu", full_name=f"Student {n}")
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_course(db):
    def _make(user, title="Intro to Economics", archived=False):
        course = Course(user_id=user.id, title=title, archived=archived)
        db.add(course)
        db.commit()
        db.refresh(course)
        return course

    return _make


@pytest.fixture
def make_assignment(db):
    def _make(user, title="Research Essay", due_at=None, course=None, tags=None, progress_percent=0):
        assignment = Assignment(
            user_id=user.id,
            course_id=course.id if course else None,
            title=title,
            due_at=due_at,
            tags=tags,
            progress_percent=progress_percent
        )
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    return _make


@pytest.fixture
def make_milestone(db):
    def _make(assignment, title="Outline", due_at=None, weight=1.0, completed=False):
        milestone = Milestone(
            assignment_id=assignment.id,
            title=title,
            due_at=due_at,
            weight=weight,
            completed=completed
        )
        db.add(milestone)
        db.commit()
        db.refresh(milestone)
        return milestone

    return _make


@pytest.fixture
def event_count(db):
    def _count(**filters):
        db.expire_all()
        query = db.query(CalendarEvent)
        for name, value in filters.items():
            query = query.filter(getattr(CalendarEvent, name) == value)
        return query.count()

    return _count
