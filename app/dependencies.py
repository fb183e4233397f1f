from typing import Annotated, Optional

from fastapi import Header


def get_actor(
    x_actor_id: Annotated[Optional[str], Header(alias="X-Actor-Id", max_length=255)] = None,
) -> Optional[str]:
    """Identity of the caller, supplied by the upstream authentication layer."""
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None
