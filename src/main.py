import sys
import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from config import get_settings
from ledger_engine import LedgerEngine
from models import ClientAccount

logger = logging.getLogger(__name__)

HEADER = "client, available, held, total, locked"


def format_row(account: ClientAccount) -> str:
    """Format one account with four decimal places and a lowercase boolean."""
    return (
        f"{account.client_id}, "
        f"{account.available:.4f}, "
        f"{account.held:.4f}, "
        f"{account.total:.4f}, "
        f"{str(account.locked).lower()}"
    )


def render_snapshot(accounts: Iterable[ClientAccount]) -> List[str]:
    return [HEADER] + [format_row(account) for account in accounts]


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: toy-ledger <transactions.csv>", file=sys.stderr)
        return 1

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    filepath = argv[-1]
    engine = LedgerEngine(settings)
    try:
        accounts = engine.process_file(filepath)
    except OSError as e:
        logger.error(f"Cannot read {filepath}: {e}")
        return 1
    except UnicodeDecodeError as e:
        logger.error(f"{filepath} is not valid UTF-8: {e}")
        return 1

    print(engine.stats.summary(), file=sys.stderr)
    for line in render_snapshot(accounts):
        print(line)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
