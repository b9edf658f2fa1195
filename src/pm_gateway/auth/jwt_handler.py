"""JWT access token verification.

Tokens are issued by the external auth service (HS256, shared JWT_SECRET,
audience "authenticated"); this service never issues or refreshes them.
The ``sub`` claim is the verified user id and is trusted as given.
"""

from jose import JWTError, jwt

from config.settings import settings
from src.pm_common.errors import InvalidCredentialsError


def decode_access_token(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: bad signature, expired, wrong audience, or no subject.
    """
    try:
        payload: dict[str, object] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],  # Explicit list prevents algorithm confusion
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidCredentialsError()
    return payload
