"""
Serial numbers for statements.

Format: [TierPrefix][CustomerCode][5-digit sequence], e.g. CPABCD00001.
The next number is recomputed from existing serials, so there is no counter
to keep in sync.
"""
import re
from typing import Iterable, Optional, Union

PLACEHOLDER_SERIAL = "CP0000000000"
SEQUENCE_WIDTH = 5
CODE_WIDTH = 4

_NON_ALNUM = re.compile(r'[^A-Za-z0-9]')
_LEADING_DIGITS = re.compile(r'\s*([+-]?\d+)')
_LEGACY_DATE_SERIAL = re.compile(r'^\d{12}$')  # YYYYMMDDxxxx


def tier_prefix(customer_tier: Optional[str]) -> str:
    """'TC' for trade (industry) customers, 'CP' for everyone else."""
    return 'TC' if customer_tier == 'industry' else 'CP'


def customer_code(customer_id: str) -> str:
    """First 4 alphanumerics of the customer id, uppercased, padded with '0'."""
    cleaned = _NON_ALNUM.sub('', customer_id or '').upper()
    return cleaned[:CODE_WIDTH].ljust(CODE_WIDTH, '0')


def parse_sequence(serial: str) -> int:
    """Read the trailing sequence; leading digits only, anything unreadable is 0."""
    match = _LEADING_DIGITS.match(serial[-SEQUENCE_WIDTH:])
    if not match:
        return 0
    return int(match.group(1))


def _serial_of(invoice: Union[dict, object]) -> str:
    if isinstance(invoice, dict):
        return invoice.get('serialNumber') or invoice.get('serial_number') or ''
    return getattr(invoice, 'serial_number', '') or ''


def next_serial(
    customer_id: str,
    customer_tier: Optional[str],
    prior_invoices: Iterable[Union[dict, object]] = (),
    start_serial_number: Optional[int] = None,
) -> str:
    """
    Compute the next serial for a customer from their existing invoices.

    start_serial_number is accepted for older callers and ignored.
    """
    base_prefix = f"{tier_prefix(customer_tier)}{customer_code(customer_id)}"

    sequences = [
        parse_sequence(serial)
        for serial in (_serial_of(inv) for inv in prior_invoices or ())
        if serial.startswith(base_prefix)
    ]
    last = max(sequences) if sequences else 0

    # Plain left padding: a negative tail such as "-0005" yields "000-4"
    return f"{base_prefix}{str(last + 1).rjust(SEQUENCE_WIDTH, '0')}"


def is_placeholder_serial(serial: Optional[str]) -> bool:
    """
    True when a statement still carries a temporary serial.

    Covers the blank-draft serial and the retired date-based format.
    """
    if not serial:
        return True
    return (
        serial == PLACEHOLDER_SERIAL
        or serial.endswith('0000')
        or bool(_LEGACY_DATE_SERIAL.match(serial))
    )
