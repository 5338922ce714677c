import re

import bcrypt

from leave_api.core import config
from leave_api.core.errors import HashFormatError

# bcrypt only looks at the first 72 bytes of input.
MAX_PASSWORD_BYTES = 72

_BCRYPT_DIGEST = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


def hash_password(plaintext: str) -> str:
    rounds = max(config.BCRYPT_ROUNDS, config.MIN_BCRYPT_ROUNDS)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")


def verify_password(plaintext: str, digest: str) -> bool:
    if not isinstance(digest, str) or not _BCRYPT_DIGEST.match(digest):
        raise HashFormatError()

    password_bytes = plaintext.encode("utf-8")
    if len(password_bytes) > MAX_PASSWORD_BYTES:
        return False

    try:
        return bcrypt.checkpw(password_bytes, digest.encode("utf-8"))
    except ValueError as exc:
        raise HashFormatError() from exc
