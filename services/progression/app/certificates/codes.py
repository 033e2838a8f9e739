"""Certificate code format: ``CERT-YYYYMMDD-XXXXXXXXXXXXXXXX``.

The date segment is the issue date (UTC), the suffix is 8 bytes from the
OS CSPRNG rendered as 16 uppercase hex characters. Parsing is lenient on
the suffix length (at least 8 hex characters) so older, shorter codes
still verify.
"""

import re
import secrets
from datetime import date, datetime

from app.exceptions import InvalidCertificateCodeError

CODE_PREFIX = "CERT-"
SUFFIX_BYTES = 8
MIN_SUFFIX_LENGTH = 8

_CODE_RE = re.compile(r"^CERT-(?P<date>\d{8})-(?P<suffix>[0-9A-F]{%d,})$" % MIN_SUFFIX_LENGTH)


def generate_certificate_code(issued_on: date) -> str:
    suffix = secrets.token_bytes(SUFFIX_BYTES).hex().upper()
    return f"{CODE_PREFIX}{issued_on:%Y%m%d}-{suffix}"


def normalize_certificate_code(value: str) -> str:
    return value.strip().upper()


def parse_certificate_code(value: str) -> date:
    """Return the issue date embedded in ``value``.

    Raises ``InvalidCertificateCodeError`` unless the code has the
    ``CERT-`` prefix, an 8-digit calendar date and a hex suffix.
    """
    match = _CODE_RE.match(normalize_certificate_code(value))
    if match is None:
        raise InvalidCertificateCodeError(value)
    try:
        return datetime.strptime(match.group("date"), "%Y%m%d").date()
    except ValueError as exc:
        raise InvalidCertificateCodeError(value) from exc


def is_well_formed(value: str) -> bool:
    try:
        parse_certificate_code(value)
    except InvalidCertificateCodeError:
        return False
    return True
