import logging
import sys
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from ledger_engine import LedgerEngine
from models import ClientAccount, ValidationError

FOUR_PLACES = Decimal("0.0001")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    try:
        quantized = value.quantize(FOUR_PLACES)
    except InvalidOperation:
        raise ValidationError(f"balance {value} does not fit with 4 decimal places")
    if quantized.is_zero():
        quantized = abs(quantized)
    return f"{quantized:f}"


def format_report(accounts: Dict[int, ClientAccount]) -> List[str]:
    lines = ["client,available,held,total,locked"]
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        lines.append(
            f"{client_id},"
            f"{format_decimal(account.available)},"
            f"{format_decimal(account.held)},"
            f"{format_decimal(account.total)},"
            f"{str(account.locked).lower()}"
        )
    return lines


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: ledger-replay <transactions.csv>", file=sys.stderr)
        return 1

    configure_logging()

    filepath = args[0]
    engine = LedgerEngine()
    try:
        accounts = engine.process_file(filepath)
        report = format_report(accounts)
    except (ValidationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for line in report:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
