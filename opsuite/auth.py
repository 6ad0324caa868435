"""
Tenant resolution for owner-facing endpoints.

Authentication happens upstream (API gateway / session layer). By the time a
request reaches this service it carries the acting business in the
``X-Business-Id`` header, and that id is threaded explicitly through every
scheduling call instead of being looked up from ambient state.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)

BUSINESS_HEADER = "X-Business-Id"


async def get_current_business_id(
    x_business_id: Optional[str] = Header(default=None, alias=BUSINESS_HEADER),
) -> int:
    """Dependency returning the acting business id. Missing or malformed ids fail closed."""
    if not x_business_id or not x_business_id.strip():
        logger.warning(f"❌ Missing {BUSINESS_HEADER} header")
        raise HTTPException(status_code=401, detail="Not authenticated. Business context required.")
    try:
        business_id = int(x_business_id.strip())
    except ValueError:
        logger.warning(f"❌ Malformed {BUSINESS_HEADER} header: {x_business_id!r}")
        raise HTTPException(status_code=401, detail="Invalid business context") from None
    if business_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid business context")
    return business_id
