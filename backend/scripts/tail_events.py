"""
Guardian Realtime - Prints the live feed in the terminal.
Run: python3 backend/scripts/tail_events.py --url http://localhost:8001/api/events --token <session>
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from services.event_stream_client import EventStreamClient, EventStreamError


def print_event(event: dict) -> None:
    print(f"[{event.get('timestamp')}] {event.get('type'):<9} {json.dumps(event.get('data'), ensure_ascii=False)}")


async def tail(url: str, token: str) -> None:
    client = EventStreamClient(url, token=token, on_event=print_event)
    try:
        await client.run()
    except EventStreamError as e:
        print(f"❌ {str(e)}")


def main():
    parser = argparse.ArgumentParser(description="Tail the Guardian Intel realtime feed")
    parser.add_argument("--url", default=os.environ.get("BACKEND_URL", "http://localhost:8001").rstrip("/") + "/api/events")
    parser.add_argument("--token", default=os.environ.get("SESSION_TOKEN"))
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    try:
        asyncio.run(tail(args.url, args.token))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
