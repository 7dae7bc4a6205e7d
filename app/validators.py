# app/validators.py
"""
Validazione e formattazione dei contatti inseriti nel checkout
(telefono keniota, email, importi in scellini).
"""
import re
from decimal import Decimal, InvalidOperation

PHONE_RE = re.compile(r"^(\+254|0)[17]\d{8}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_GROUPS_RE = re.compile(r"^(\+\d{3})(\d{3})(\d{3})(\d{3})")


def validate_phone_number(phone: str) -> bool:
    if not phone:
        return False
    return bool(PHONE_RE.match(re.sub(r"\s", "", phone)))


def validate_email(email: str) -> bool:
    if not email:
        return False
    return bool(EMAIL_RE.match(email))


def format_phone_number(value: str) -> str:
    """
    "0712345678" → "+254 712 345 678".
    Un numero incompleto viene solo normalizzato, senza spazi.
    """
    digits = re.sub(r"\D", "", value or "")

    if digits.startswith("0"):
        digits = "+254" + digits[1:]
    elif digits.startswith("7") or digits.startswith("1"):
        digits = "+254" + digits
    elif digits.startswith("254"):
        digits = "+" + digits

    if len(digits) > 3:
        digits = PHONE_GROUPS_RE.sub(r"\1 \2 \3 \4", digits)

    return digits


def format_currency(amount) -> str:
    """
    Solleva ValueError per input non numerici, infiniti, NaN o fuori dalla
    precisione decimale (quantize a 3 cifre).
    """
    try:
        value = Decimal(str(amount))
        if not value.is_finite():
            raise InvalidOperation
        value = value.quantize(Decimal("0.001")).normalize()
    except (InvalidOperation, ValueError):
        raise ValueError(f"Importo non valido: {amount!r}") from None

    if value == value.to_integral_value():
        return f"Ksh {int(value):,}"
    return f"Ksh {value:,f}"
