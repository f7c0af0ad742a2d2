from __future__ import annotations

from urllib.parse import urlencode

from meetai.settings import get_settings

AGENT_AVATAR_VARIANT = "bottts-neutral"
USER_AVATAR_VARIANT = "initials"


def generate_avatar_uri(*, seed: str, variant: str) -> str:
    """
    DiceBear avatar URL for a seed.
    Agents use the bottts-neutral style, humans get initials.
    """
    settings = get_settings()
    query = {"seed": seed}
    if variant == USER_AVATAR_VARIANT:
        query["fontWeight"] = "500"
    return f"{settings.AVATAR_BASE_URL.rstrip('/')}/{variant}/svg?{urlencode(query)}"
