"""
Pytest fixtures for TaskLane tests.
Provides test database, session, HTTP client and sample data.
"""
import pytest
from datetime import date, datetime, timezone
from sqlmodel import SQLModel, Session, create_engine
from sqlalchemy.pool import StaticPool
from starlette.testclient import TestClient

from tasklane.auth import CurrentUser
from tasklane.main import app
from tasklane.database import get_session
from tasklane.models import Category, RecurringTask, Task, Workspace
from tasklane.recurrence import FixedDaily, FixedWeekly, to_columns


USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(name="engine", scope="function")
def engine_fixture():
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a database session for testing."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(engine):
    """Create a test client with the test database, authenticated as USER_ID."""
    def get_test_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = get_test_session
    client = TestClient(app, raise_server_exceptions=False, headers={"X-User-Id": USER_ID})
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def user() -> CurrentUser:
    return CurrentUser(id=USER_ID)


@pytest.fixture
def other_user() -> CurrentUser:
    return CurrentUser(id=OTHER_USER_ID)


# ============ Sample Data Fixtures ============

@pytest.fixture
def workspace(session) -> Workspace:
    """The user's personal workspace."""
    workspace = Workspace(user_id=USER_ID, name="Personal", color="#6366f1")
    session.add(workspace)
    session.commit()
    session.refresh(workspace)
    return workspace


@pytest.fixture
def category(session, workspace) -> Category:
    category = Category(user_id=USER_ID, workspace_id=workspace.id, name="Home", color="#22c55e")
    session.add(category)
    session.commit()
    session.refresh(category)
    return category


@pytest.fixture
def weekly_template(session, workspace) -> RecurringTask:
    """A Mon/Wed/Fri template with one pending and one completed instance."""
    template = RecurringTask(
        user_id=USER_ID,
        workspace_id=workspace.id,
        title="Clean Kitchen",
        description="Wipe counters",
        priority=1,
        start_date=date(2025, 12, 29),
        next_due_date=date(2025, 12, 31),
        occurrences_generated=2,
        **to_columns(FixedWeekly(days_of_week=(0, 2, 4))),
    )
    session.add(template)
    session.commit()
    session.refresh(template)

    session.add(Task(
        user_id=USER_ID,
        workspace_id=workspace.id,
        recurring_task_id=template.id,
        title="Clean Kitchen",
        description="Wipe counters",
        priority=1,
        scheduled_date=date(2025, 12, 29),
        is_completed=True,
        completed_at=datetime(2025, 12, 29, 18, 0, tzinfo=timezone.utc),
    ))
    session.add(Task(
        user_id=USER_ID,
        workspace_id=workspace.id,
        recurring_task_id=template.id,
        title="Clean Kitchen",
        description="Wipe counters",
        priority=1,
        scheduled_date=date(2025, 12, 31),
    ))
    session.commit()
    return template


@pytest.fixture
def standalone_task(session, workspace) -> Task:
    """A one-off task scheduled for today."""
    task = Task(
        user_id=USER_ID,
        workspace_id=workspace.id,
        title="Fix Door Handle",
        description="The handle is loose",
        priority=2,
        scheduled_date=date.today(),
    )
    session.add(task)
    session.commit()
    session.refresh(task)
    return task


@pytest.fixture
def daily_template_data(workspace) -> dict:
    return {
        "workspace_id": workspace.id,
        "title": "Stretch",
        "priority": 1,
        "recurrence": FixedDaily(interval_days=1).model_dump(),
        "start_date": date(2025, 1, 1),
    }
