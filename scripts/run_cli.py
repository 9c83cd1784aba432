"""Interactive CLI for chatting with the scheme assistant without the web UI.

Usage:
    python scripts/run_cli.py --user <user-id>
"""

import argparse
import os
import sys

# Ensure the project root is on the path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from agent.guardrails import audit_logger  # noqa: E402
from agent.threads import ChatService  # noqa: E402
from memory.store import get_memory_service  # noqa: E402
from records import get_records  # noqa: E402
from records.threads import ThreadStore  # noqa: E402


def main():
    """Open a new thread for the user and run an interactive chat loop."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user", required=True, help="Citizen user id")
    args = parser.parse_args()

    service = ChatService(
        threads=ThreadStore(),
        records=get_records(),
        memory_service=get_memory_service(),
        audit=audit_logger,
    )

    print("=" * 60)
    print("  Scheme Sahayak: CLI Mode")
    print("  Type 'quit' or 'exit' to stop.")
    print("=" * 60)
    print()

    thread = service.create_thread(args.user)

    while True:
        try:
            user_input = input("\033[1;36mYou:\033[0m ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\nGoodbye!")
            break

        if not user_input:
            continue
        if user_input.lower() in ("quit", "exit"):
            print("Goodbye!")
            break

        print()
        try:
            result = service.send_message(args.user, thread["id"], user_input)
            print(f"\033[1;35mSahayak:\033[0m {result['assistantMessage']['content']}")
        except Exception as e:
            print(f"\033[1;31mError:\033[0m {e}")
        print()


if __name__ == "__main__":
    main()
