"""CLI entry point for the scheduling assistant.

A terminal chat client for testing and development that runs the same
turn orchestrator as the API, in-process against the configured database.
For production, use the FastAPI server (jacob_hvac/server.py).

Usage:
    python -m jacob_hvac.main --name "Jane Doe" --phone 412-555-0100
    python -m jacob_hvac.main --debug    # show API calls and SQL-level logs
"""

from __future__ import annotations

import argparse
import logging

from jacob_hvac.agent import create_turn_orchestrator
from jacob_hvac.config import load_settings
from jacob_hvac.db import create_db_engine, create_session_factory, init_db, session_scope
from jacob_hvac.prompts import get_greeting
from jacob_hvac.services.availability_client import LocalAvailabilityLookup
from jacob_hvac.services.chat_store import ChatSessionStore
from jacob_hvac.services.metrics import metrics

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("jacob_hvac").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="HVAC scheduling assistant CLI")
    parser.add_argument("--name", default="Guest Customer", help="Customer full name")
    parser.add_argument("--phone", default="000-000-0000", help="Customer phone (identifies the customer)")
    parser.add_argument("--email", default=None, help="Customer email")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    _configure_logging(debug=args.debug)
    settings = load_settings()
    metrics.configure(settings.metrics_enabled)

    engine = create_db_engine(settings.database_url)
    init_db(engine)
    session_factory = create_session_factory(engine)
    orchestrator = create_turn_orchestrator(
        session_factory, settings, LocalAvailabilityLookup(session_factory, settings),
    )

    def new_session() -> int:
        with session_scope(session_factory) as session:
            started = ChatSessionStore(session).start_session(args.name, args.phone, args.email)
        print(f"\nAssistant: {get_greeting(settings, started.first_name)}\n")
        return started.session_id

    print("\n" + "=" * 60)
    print(f"  {settings.business_name} - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60)

    session_id = new_session()

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nGoodbye! Stay comfortable!")
            break

        if user_input.lower() == "new":
            session_id = new_session()
            continue

        try:
            reply = orchestrator.handle_message(session_id, user_input)
            print(f"\nAssistant: {reply}\n")
        except KeyboardInterrupt:
            print("\n\nGoodbye!")
            break
        except Exception as e:
            logger.exception("Turn failed")
            print(f"\nAssistant: Sorry, something went wrong: {e}")
            print("     Please try again or type 'new' to start a fresh session.\n")

    engine.dispose()


if __name__ == "__main__":
    main()
