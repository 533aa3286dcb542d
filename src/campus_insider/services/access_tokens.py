"""Access token issuance for operator tooling and tests."""

import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from campus_insider.config import get_settings
from campus_insider.dependencies import hash_token
from campus_insider.models.access_token import AccessToken


def generate_access_token(prefix: str) -> str:
    """Generate a raw access token like ci_at_XXXXXXXX."""
    return f"{prefix}{secrets.token_hex(24)}"


async def issue_access_token(db: AsyncSession, user_id: int) -> str:
    """Store a new active token for user_id and return the raw value.

    Only the hash is persisted; the raw token cannot be recovered later.
    """
    settings = get_settings()
    raw_token = generate_access_token(settings.access_token_prefix)

    db.add(
        AccessToken(
            user_id=user_id,
            token_hash=hash_token(raw_token, settings.api_secret_key),
            prefix=raw_token[:11],
        )
    )
    await db.flush()
    return raw_token
