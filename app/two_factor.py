# app/two_factor.py
from datetime import datetime, timezone
from typing import Optional

import pyotp
from pyotp.utils import strings_equal

ISSUER_NAME = "Kalenjin Vibes Admin"

# uno step di tolleranza (±30s) per il clock drift
VALID_WINDOW = 1


def generate_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(username: str, secret: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=username, issuer_name=ISSUER_NAME)


def match_timecode(secret: str, code: str, last_used: Optional[int] = None) -> Optional[int]:
    """
    Ritorna il timecode a cui corrisponde il codice, oppure None.
    Un timecode <= last_used è già stato consumato e non viene più accettato.
    """
    code = (code or "").strip()
    if not secret or not code.isdigit():
        return None

    totp = pyotp.TOTP(secret)
    current = totp.timecode(datetime.now(timezone.utc))
    for timecode in range(current - VALID_WINDOW, current + VALID_WINDOW + 1):
        if last_used is not None and timecode <= last_used:
            continue
        if strings_equal(code, totp.generate_otp(timecode)):
            return timecode
    return None


def verify_code(secret: str, code: str) -> bool:
    return match_timecode(secret, code) is not None
