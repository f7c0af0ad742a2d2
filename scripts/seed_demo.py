"""Create a demo agent and an upcoming meeting for manual webhook testing."""

from __future__ import annotations

from meetai.db.session import init_db
from meetai.services.meeting_store import get_meeting_store


def main() -> None:
    init_db()
    store = get_meeting_store()
    agent = store.create_agent(
        name="Demo Assistant",
        user_id="demo-user",
        instructions="You are a helpful meeting assistant. Keep answers short.",
    )
    meeting = store.create_meeting(name="Demo meeting", user_id="demo-user", agent_id=agent.id)
    print(f"agent_id={agent.id}")
    print(f"meeting_id={meeting.id}")


if __name__ == "__main__":
    main()
