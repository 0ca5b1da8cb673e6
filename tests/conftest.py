"""Shared fixtures: an in-memory database per test and a few seeded rows."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.database import Base, enable_sqlite_foreign_keys
from tracker.models.project import Project
from tracker.models.story import Story
from tracker.models.user import User
from tracker.story.backlog_service import BacklogService
from tracker.story.locking import ProjectLocks


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
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
def user(db):
    user = User(email="ada@example.com", first_name="Ada", last_name="Lovelace")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def project(db):
    project = Project(name="Apollo")
    db.add(project)
    db.commit()
    return project


@pytest.fixture
def service(db):
    return BacklogService(db, locks=ProjectLocks(timeout=1))


@pytest.fixture
def make_stories(service, project, user):
    """Create stories titled after the given names, in order."""

    def _make(*titles):
        return [service.create_story(project.id, {"title": title}, user.id) for title in titles]

    return _make


def positions(db, project_id):
    """[(title, position), ...] in position order, straight from the database."""
    db.expire_all()
    rows = (
        db.query(Story.title, Story.position)
        .filter(Story.project_id == project_id)
        .order_by(Story.position)
        .all()
    )
    return [(title, position) for title, position in rows]
