from __future__ import annotations

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional, Union

from tfe_client.core.client import TFEClient
from tfe_client.core.operation import Operation
from tfe_client.models import IPRanges


async def read_ip_ranges(
    client: TFEClient, *, modified_since: Union[datetime, str, None] = None
) -> Optional[IPRanges]:
    """
    Fetch the platform's published IP ranges (plain JSON, not JSON:API).
    Returns None when ``modified_since`` is given and nothing changed (304).
    """
    headers = {}
    if isinstance(modified_since, datetime):
        if modified_since.tzinfo is None:
            modified_since = modified_since.replace(tzinfo=timezone.utc)
        headers["If-Modified-Since"] = format_datetime(
            modified_since.astimezone(timezone.utc), usegmt=True
        )
    elif modified_since:
        headers["If-Modified-Since"] = modified_since

    return await client.execute(
        Operation("GET", "/api/meta/ip-ranges", headers=headers, output=IPRanges)
    )
