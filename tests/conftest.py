from __future__ import annotations

import os

# Importing meetai.main builds the module-level app; keep it off the real database.
os.environ.setdefault("DB_AUTO_CREATE", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from meetai.db.models import MeetingStatus
from meetai.db.session import init_db, make_engine
from meetai.services.meeting_store import MeetingStore
from meetai.services.webhook_context import WebhookContext
from meetai.settings import Settings
from tests.util_fakes import TEST_API_KEY, TEST_API_SECRET, FakeChat, FakeJobQueue, FakeLLM, FakeVideo


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        ENV="dev",
        DB_AUTO_CREATE=False,
        STREAM_API_KEY=TEST_API_KEY,
        STREAM_API_SECRET=TEST_API_SECRET,
        OPENAI_API_KEY="sk-test",
        ALLOW_DEBUG_ENDPOINTS=True,
    )


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'meetai-test.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine) -> MeetingStore:
    return MeetingStore(sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture()
def video() -> FakeVideo:
    return FakeVideo()


@pytest.fixture()
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture()
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture()
def jobs() -> FakeJobQueue:
    return FakeJobQueue()


@pytest.fixture()
def ctx(store, video, chat, llm, jobs, settings) -> WebhookContext:
    return WebhookContext(store=store, video=video, chat=chat, llm=llm, jobs=jobs, settings=settings)


@pytest.fixture()
def agent(store):
    return store.create_agent(name="Budget Bot", user_id="owner-1", instructions="Be concise.", agent_id="agent-1")


@pytest.fixture()
def make_meeting(store, agent):
    def _make(meeting_id: str, status: MeetingStatus = MeetingStatus.UPCOMING, summary: str | None = None):
        return store.create_meeting(
            name=f"Meeting {meeting_id}",
            user_id="owner-1",
            agent_id=agent.id,
            meeting_id=meeting_id,
            status=status,
            summary=summary,
        )

    return _make


@pytest.fixture()
def client(ctx, store, settings):
    import meetai.main as main_module
    from meetai.api.routes_webhooks_stream import get_webhook_context
    from meetai.services.meeting_store import get_meeting_store
    from meetai.settings import get_settings

    app = main_module.create_app()
    app.dependency_overrides[get_webhook_context] = lambda: ctx
    app.dependency_overrides[get_meeting_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as c:
        yield c
