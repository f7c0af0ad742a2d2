from __future__ import annotations

import logging
from typing import Any

from meetai.db.models import Agent, Meeting
from meetai.schemas.webhook import MessageNewEvent
from meetai.services.errors import AgentNotFound, MissingFields, NoCompletion, NotFound
from meetai.services.webhook_context import WebhookContext
from meetai.util.avatar import AGENT_AVATAR_VARIANT, generate_avatar_uri

logger = logging.getLogger(__name__)


def build_system_prompt(meeting: Meeting, agent: Agent) -> str:
    return f"""You are an AI assistant helping the user revisit a recently completed meeting.
Below is a summary of the meeting, generated from the transcript:

{meeting.summary or ""}

The following are your original instructions from the live meeting assistant. Please continue to follow these behavioral guidelines as you assist the user:

{agent.instructions}

The user may ask questions about the meeting, request clarifications, or ask for follow-up actions.
Always base your responses on the meeting summary above.

You also have access to the recent conversation history between you and the user. Use the context of previous messages to provide relevant, coherent, and helpful responses. If the user's question refers to something discussed earlier, make sure to take that into account and maintain continuity in the conversation.

If the summary does not contain enough information to answer a question, politely let the user know.

Be concise, helpful, and focus on providing accurate information from the meeting and the ongoing conversation.
"""


def build_history(messages: list[Any], agent_id: str, limit: int) -> list[dict[str, str]]:
    """
    Take the last `limit` channel messages, drop blank ones, and label each by author.
    The slice happens before the blank filter, so fewer than `limit` may survive.
    """
    history: list[dict[str, str]] = []
    for msg in messages[-limit:] if limit > 0 else []:
        text = (msg.text or "").strip()
        if not text:
            continue
        role = "assistant" if msg.user_id == agent_id else "user"
        history.append({"role": role, "content": msg.text})
    return history


def handle_new_message(ctx: WebhookContext, event: MessageNewEvent) -> None:
    meeting_id = event.meeting_id
    user_id = event.user_id
    channel_id = event.channel_id
    text = event.text

    if not meeting_id or not user_id or not channel_id or not text:
        raise MissingFields("Meeting ID, User ID, Text or Channel ID is missing in the event")

    if meeting_id != channel_id:
        logger.warning("message.new cid/channel mismatch; resolving by channel. cid_id=%s channel_id=%s", meeting_id, channel_id)

    meeting = ctx.store.get_completed_meeting(channel_id)
    if meeting is None:
        raise NotFound("Meeting not found or not completed")

    agent = ctx.store.get_agent(meeting.agent_id)
    if agent is None:
        raise AgentNotFound("Agent not found for the meeting")

    if user_id == agent.id:
        logger.debug("Ignoring agent's own message. meeting_id=%s", meeting.id)
        return

    channel_type = event.channel_type or ctx.settings.STREAM_CHANNEL_TYPE
    channel = ctx.chat.channel(channel_type, channel_id)
    channel.watch()
    history = build_history(channel.state.messages, agent.id, ctx.settings.CHAT_HISTORY_LIMIT)

    completion = ctx.llm.chat_completion(
        [
            {"role": "system", "content": build_system_prompt(meeting, agent)},
            *history,
            {"role": "user", "content": text},
        ]
    )
    if not completion:
        logger.error("Empty completion for chat follow-up. meeting_id=%s", meeting.id)
        raise NoCompletion("No response from OpenAI")

    avatar_url = generate_avatar_uri(seed=agent.name, variant=AGENT_AVATAR_VARIANT)
    ctx.chat.upsert_user(id=agent.id, name=agent.name, image=avatar_url)
    channel.send_message(
        text=completion,
        user={"id": agent.id, "name": agent.name, "image": avatar_url},
    )
    logger.info("Agent replied in chat. meeting_id=%s agent_id=%s", meeting.id, agent.id)
