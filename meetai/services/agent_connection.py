from __future__ import annotations

import logging

from meetai.db.models import Meeting
from meetai.services.errors import AgentNotFound
from meetai.services.webhook_context import WebhookContext
from meetai.util.avatar import AGENT_AVATAR_VARIANT, generate_avatar_uri

logger = logging.getLogger(__name__)


def connect_agent_to_call(ctx: WebhookContext, meeting: Meeting) -> None:
    """
    Attach the meeting's agent to the live call as a realtime OpenAI participant.

    Only called after start_meeting() won the upcoming -> active transition.
    If the agent row is gone the meeting stays active with no agent attached;
    nothing is rolled back.
    """
    agent = ctx.store.get_agent(meeting.agent_id)
    if agent is None:
        logger.error(
            "Agent missing for started meeting; meeting left active without agent. meeting_id=%s agent_id=%s",
            meeting.id,
            meeting.agent_id,
        )
        raise AgentNotFound("Agent not found for the meeting")

    ctx.video.upsert_users(
        [
            {
                "id": agent.id,
                "name": agent.name,
                "role": "user",
                "image": generate_avatar_uri(seed=agent.name, variant=AGENT_AVATAR_VARIANT),
            }
        ]
    )

    call = ctx.video.call(ctx.settings.STREAM_CALL_TYPE, meeting.id)
    session = ctx.video.connect_openai(
        call=call,
        openai_api_key=ctx.settings.OPENAI_API_KEY,
        agent_user_id=agent.id,
    )
    session.update_session(instructions=agent.instructions)
    logger.info("Agent connected to call. meeting_id=%s agent_id=%s", meeting.id, agent.id)
