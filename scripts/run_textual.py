from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from culprit import config
from culprit.domain.errors import ConfigurationError
from culprit.session import start_session
from culprit.ui.app import AccusationApp


def main() -> None:
    parser = argparse.ArgumentParser(description="Accusation Textual wrapper.")
    parser.add_argument("--accusation", type=str, default=str(config.ACCUSATION_PATH))
    parser.add_argument("--clues", type=str, default=str(config.CLUES_PATH))
    parser.add_argument(
        "--state-db",
        type=str,
        default=str(config.STATE_DB_PATH),
        help="SQLite database path for accusation state.",
    )
    parser.add_argument(
        "--no-state-db",
        action="store_true",
        help="Run without persisting accusation state.",
    )
    parser.add_argument(
        "--reset-state",
        action="store_true",
        help="Clear stored accusation state before starting.",
    )
    parser.add_argument(
        "--discover",
        action="append",
        default=[],
        metavar="CLUE_ID",
        help="Start with this clue already discovered (repeatable).",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Write logs here; the terminal belongs to the UI.",
    )
    parser.add_argument("--log-level", type=str, default="WARNING")
    args = parser.parse_args()
    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=args.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    state_db = None if args.no_state_db else Path(args.state_db)
    try:
        session = start_session(
            accusation_path=Path(args.accusation),
            clues_path=Path(args.clues),
            state_db=state_db,
            reset_state=args.reset_state,
            discovered=args.discover,
        )
    except ConfigurationError as exc:
        print(exc)
        for error in exc.errors:
            print(f"  - {error}")
        sys.exit(1)
    except KeyError as exc:
        parser.error(f"--discover: {exc.args[0]}")

    app = AccusationApp(session)
    app.run()


if __name__ == "__main__":
    main()
