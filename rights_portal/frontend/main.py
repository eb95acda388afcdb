"""
Command-line interface for running the rights issue portal.

This script starts the REST API, the Streamlit UI, or both
concurrently, and loads the shareholder register and stockbroker list
into the database.

Usage:

```
python -m rights_portal.frontend.main [server|ui|both]
python -m rights_portal.frontend.main import-register REGISTER.csv
python -m rights_portal.frontend.main load-stockbrokers BROKERS.csv
```

If no argument is provided, the default is ``both`` which will start
the API on port 5000 in a background thread and then launch the
Streamlit UI on port 8000.  The server is started without
auto-reloading.
"""

from __future__ import annotations

import logging
import os
import subprocess
import sys
import threading
import time
from pathlib import Path

logger = logging.getLogger(__name__)

USAGE = (
    "Usage: python -m rights_portal.frontend.main "
    "[server|ui|both|import-register FILE|load-stockbrokers FILE]"
)


def run_server() -> None:
    """Start the REST API on port 5000."""
    from rights_portal.backend import server
    server.run(host="0.0.0.0", port=5000)


def run_ui() -> None:
    """Start the Streamlit UI on port 8000."""
    app_path = Path(__file__).parent / "app.py"
    # Streamlit runs in its own process so it does not share the event
    # loop used by FastAPI in the API thread.
    subprocess.run([
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(app_path),
        "--server.port",
        "8000",
        "--server.address",
        "0.0.0.0",
    ])


def run_both() -> None:
    """Start the API in a background thread and then launch the UI."""
    server_thread = threading.Thread(target=run_server, daemon=True)
    server_thread.start()
    # Give the server a moment to start up
    time.sleep(2)
    run_ui()


def import_register(path: str) -> int:
    """Parse, validate and load a register export.  Returns an exit code."""
    from rights_portal.backend import database as db
    from rights_portal.backend.data_validator import RegisterValidator
    from rights_portal.backend.register import parse_register

    with open(path, "rb") as fh:
        try:
            df = parse_register(fh, os.path.basename(path))
        except ValueError as e:
            logger.error(f"Could not read register {path}: {e}")
            return 1
    validated, report = RegisterValidator().validate_register(df)
    logger.info(f"Register quality score: {report['quality_score']:.1f}%")
    for recommendation in report["recommendations"]:
        logger.warning(recommendation)
    for row in report["problematic_rows"]:
        logger.warning(f"Row {row['row']} ({row['reg_account_number']}): {'; '.join(row['issues'])}")
    db.init_db()
    stats = db.bulk_insert_shareholders(validated)
    print(
        f"Imported {stats['total']} rows: {stats['inserted']} inserted, "
        f"{stats['updated']} updated, {stats['skipped']} skipped"
    )
    return 0


def load_stockbrokers(path: str) -> int:
    from rights_portal.backend import database as db
    from rights_portal.backend.register import parse_stockbrokers

    with open(path, "rb") as fh:
        try:
            brokers = parse_stockbrokers(fh)
        except ValueError as e:
            logger.error(f"Could not read stockbroker list {path}: {e}")
            return 1
    db.init_db()
    count = db.upsert_stockbrokers(brokers)
    print(f"Loaded {count} stockbrokers")
    return 0


def main() -> None:
    """Entry point for the CLI.

    Parses the first command-line argument to determine which component
    to run.  Accepts ``server``, ``ui``, ``both``, ``import-register``
    and ``load-stockbrokers``.  Defaults to ``both`` if no argument is
    supplied.
    """
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = sys.argv[1:]
    command = args[0].lower() if args else "both"
    if command == "server":
        run_server()
    elif command == "ui":
        run_ui()
    elif command == "both":
        run_both()
    elif command in ("import-register", "load-stockbrokers"):
        if len(args) < 2:
            print(USAGE)
            sys.exit(1)
        loader = import_register if command == "import-register" else load_stockbrokers
        sys.exit(loader(args[1]))
    else:
        print(f"Unknown command: {command}")
        print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
