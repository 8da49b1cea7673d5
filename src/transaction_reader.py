import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional

from models import Transaction, TransactionType, ValidationError

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Amounts and balances carry 4 fractional digits inside a 28-digit decimal context.
MAX_AMOUNT = Decimal(10) ** 24

REQUIRED_COLUMNS = ("type", "client", "tx")


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """
    Read CSV and yield transactions one row at a time.
    Rows may be shorter than the header; missing trailing cells count as blank.
    """
    with open(filepath, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f, skipinitialspace=True)
        try:
            yield from _read_rows(reader)
        except UnicodeDecodeError as e:
            raise ValidationError(f"input is not valid UTF-8: {e.reason}", line=reader.line_num)
        except csv.Error as e:
            raise ValidationError(f"malformed CSV: {e}", line=reader.line_num)


def _read_rows(reader: csv.DictReader) -> Iterator[Transaction]:
    if reader.fieldnames is None:
        return

    columns = {name.strip().lower() for name in reader.fieldnames}
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise ValidationError(f"header is missing column(s): {', '.join(missing)}", line=1)

    for row in reader:
        yield parse_csv_row(row, line=reader.line_num)


def parse_csv_row(row: Dict[Optional[str], Optional[str]], line: Optional[int] = None) -> Transaction:
    """Parse CSV row into Transaction."""
    # Extra cells land under the None key and are ignored.
    normalized = {
        k.strip().lower(): (v or "").strip()
        for k, v in row.items()
        if k is not None
    }

    try:
        transaction_type = TransactionType(normalized.get("type", "").lower())
    except ValueError:
        raise ValidationError(f"unknown transaction type {normalized.get('type')!r}", line=line)

    client_id = _parse_id(normalized.get("client", ""), "client", MAX_CLIENT_ID, line)
    transaction_id = _parse_id(normalized.get("tx", ""), "tx", MAX_TRANSACTION_ID, line)

    amount = None
    amount_str = normalized.get("amount", "")
    if amount_str:
        amount = _parse_amount(amount_str, line)

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


def _parse_id(value: str, field: str, upper_bound: int, line: Optional[int]) -> int:
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationError(f"{field} {value!r} is not an integer", line=line)

    if not 0 <= parsed <= upper_bound:
        raise ValidationError(f"{field} {parsed} out of range 0..{upper_bound}", line=line)
    return parsed


def _parse_amount(value: str, line: Optional[int]) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValidationError(f"amount {value!r} is not a decimal", line=line)

    if not amount.is_finite():
        raise ValidationError(f"amount {value!r} is not a finite decimal", line=line)
    if amount < 0:
        raise ValidationError(f"amount {value!r} is negative", line=line)
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"amount {value!r} is too large, must be below 10^24", line=line)

    if amount.as_tuple().exponent < -4:
        logger.debug(f"line {line}: amount {value} has more than 4 fractional digits, kept exact")
    return amount
