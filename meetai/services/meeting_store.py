from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from meetai.db.models import Agent, Meeting, MeetingStatus, utcnow
from meetai.db.session import get_session_factory

logger = logging.getLogger(__name__)


class MeetingStore:
    """
    Meeting/Agent persistence.

    Status transitions are single conditional UPDATE ... RETURNING statements keyed on
    (id, current status). A transition that matched no row returns None; callers treat
    that as "not found / already handled". Never read-then-write a status.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def _transition(
        self,
        meeting_id: str,
        *,
        from_status: MeetingStatus,
        values: dict[str, Any],
    ) -> Optional[Meeting]:
        stmt = (
            update(Meeting)
            .where(Meeting.id == meeting_id, Meeting.status == from_status)
            .values(**values)
            .returning(Meeting)
        )
        with self._session_factory() as session, session.begin():
            row = session.execute(stmt).scalar_one_or_none()
        if row is None:
            logger.info(
                "Meeting transition matched no row. meeting_id=%s from=%s to=%s",
                meeting_id,
                from_status.value,
                values.get("status"),
            )
        return row

    def _set_fields(self, meeting_id: str, values: dict[str, Any]) -> Optional[Meeting]:
        stmt = update(Meeting).where(Meeting.id == meeting_id).values(**values).returning(Meeting)
        with self._session_factory() as session, session.begin():
            return session.execute(stmt).scalar_one_or_none()

    # Lifecycle transitions

    def start_meeting(self, meeting_id: str) -> Optional[Meeting]:
        return self._transition(
            meeting_id,
            from_status=MeetingStatus.UPCOMING,
            values={"status": MeetingStatus.ACTIVE, "started_at": utcnow()},
        )

    def end_meeting(self, meeting_id: str) -> Optional[Meeting]:
        return self._transition(
            meeting_id,
            from_status=MeetingStatus.ACTIVE,
            values={"status": MeetingStatus.PROCESSING, "ended_at": utcnow()},
        )

    def complete_meeting(self, meeting_id: str, summary: str) -> Optional[Meeting]:
        return self._transition(
            meeting_id,
            from_status=MeetingStatus.PROCESSING,
            values={"status": MeetingStatus.COMPLETED, "summary": summary},
        )

    def cancel_meeting(self, meeting_id: str) -> Optional[Meeting]:
        return self._transition(
            meeting_id,
            from_status=MeetingStatus.UPCOMING,
            values={"status": MeetingStatus.CANCELLED},
        )

    # Artifact URLs (any status)

    def set_transcript_url(self, meeting_id: str, url: str) -> Optional[Meeting]:
        return self._set_fields(meeting_id, {"transcript_url": url})

    def set_recording_url(self, meeting_id: str, url: str) -> Optional[Meeting]:
        return self._set_fields(meeting_id, {"recording_url": url})

    # Reads

    def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        with self._session_factory() as session:
            return session.get(Meeting, meeting_id)

    def get_completed_meeting(self, meeting_id: str) -> Optional[Meeting]:
        stmt = select(Meeting).where(Meeting.id == meeting_id, Meeting.status == MeetingStatus.COMPLETED)
        with self._session_factory() as session:
            return session.execute(stmt).scalar_one_or_none()

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        with self._session_factory() as session:
            return session.get(Agent, agent_id)

    def get_agents(self, agent_ids: Iterable[str]) -> list[Agent]:
        ids = list({a for a in agent_ids if a})
        if not ids:
            return []
        with self._session_factory() as session:
            return list(session.execute(select(Agent).where(Agent.id.in_(ids))).scalars())

    # Inserts (CRUD lives elsewhere; used by seeding scripts and tests)

    def create_agent(self, *, name: str, user_id: str, instructions: str, agent_id: str | None = None) -> Agent:
        agent = Agent(name=name, user_id=user_id, instructions=instructions)
        if agent_id:
            agent.id = agent_id
        with self._session_factory() as session, session.begin():
            session.add(agent)
        return agent

    def create_meeting(
        self,
        *,
        name: str,
        user_id: str,
        agent_id: str,
        meeting_id: str | None = None,
        status: MeetingStatus = MeetingStatus.UPCOMING,
        summary: str | None = None,
    ) -> Meeting:
        meeting = Meeting(name=name, user_id=user_id, agent_id=agent_id, status=status, summary=summary)
        if meeting_id:
            meeting.id = meeting_id
        with self._session_factory() as session, session.begin():
            session.add(meeting)
        return meeting


_store: MeetingStore | None = None


def get_meeting_store() -> MeetingStore:
    global _store
    if _store is None:
        _store = MeetingStore(get_session_factory())
    return _store
