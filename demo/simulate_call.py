#!/usr/bin/env python3
"""
demo/simulate_call.py

Usage:
  python demo/simulate_call.py --session sess-123 --agent 7 --dial +256712345678
  python demo/simulate_call.py --session sess-124 --agent 7 --dial +256712345678 --form --fail

Replays the provider's voice callbacks for one WebRTC-originated call against a running
server: Ringing -> Answered -> Completed. Each response (provider XML) is printed, then the
resulting call activity is fetched from /api/calls.
"""
import argparse
import json
import os
import time
from datetime import datetime, timezone

import requests

DEFAULT_BASE = "http://localhost:8000"
PLATFORM_DOMAIN = "betsure.ug.sip.africastalking.com"


def build_events(session_id, agent_id, dialed, fail=False, duration=42):
    caller = f"agent_{agent_id}.{PLATFORM_DOMAIN}"
    base = {
        "sessionId": session_id,
        "callerNumber": caller,
        "clientDialedNumber": dialed,
        "direction": "Outbound",
    }
    started = datetime.now(timezone.utc).isoformat()
    return [
        {**base, "isActive": "1", "callSessionState": "Ringing", "callStartTime": started},
        {**base, "isActive": "1", "callSessionState": "Answered"},
        {
            **base,
            "isActive": "0",
            "callSessionState": "Completed",
            "status": "Failed" if fail else "Success",
            "dialDurationInSeconds": "0" if fail else str(duration),
            "durationInSeconds": "0" if fail else str(duration + 3),
        },
    ]


def post_event(base_url, event, as_form=False):
    url = f"{base_url.rstrip('/')}/webhook/voice"
    if as_form:
        resp = requests.post(url, data=event, timeout=10)
    else:
        resp = requests.post(url, json=event, timeout=10)
    resp.raise_for_status()
    return resp.text


def fetch_activity(base_url, agent_id):
    url = f"{base_url.rstrip('/')}/api/calls"
    resp = requests.get(url, params={"user_id": agent_id, "limit": 1}, timeout=10)
    resp.raise_for_status()
    calls = resp.json().get("calls", [])
    return calls[0] if calls else None


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default=os.environ.get("BASE_URL", DEFAULT_BASE))
    parser.add_argument("--session", required=True, help="Provider sessionId to simulate")
    parser.add_argument("--agent", required=True, help="Agent id embedded in the caller identity")
    parser.add_argument("--dial", required=True, help="Number the softphone dialed")
    parser.add_argument("--form", action="store_true", help="Send form-urlencoded bodies instead of JSON")
    parser.add_argument("--fail", action="store_true", help="Finish the call with a failed status")
    parser.add_argument("--delay", type=float, default=0.5, help="Seconds between events")
    args = parser.parse_args()

    for event in build_events(args.session, args.agent, args.dial, fail=args.fail):
        print(f"[info] POST {event['callSessionState']} isActive={event['isActive']}")
        print(post_event(args.base, event, as_form=args.form))
        time.sleep(args.delay)

    activity = fetch_activity(args.base, args.agent)
    if activity:
        print("[info] call activity:", json.dumps(activity, indent=2))
    else:
        print("[warn] no call activity recorded. Check server logs.")


if __name__ == "__main__":
    main()
