"""Send test observations to the backend — a single count, or a JSON-lines replay file."""

import argparse
import json
import requests
from datetime import datetime, timezone

BACKEND_URL = "http://localhost:8080/api/v1/observations"


def post_observation(url, lot_id, count, observed_at=None, camera_id=None, api_key=None):
    payload = {"lot_id": lot_id, "vehicle_count": count}
    if observed_at:
        payload["observed_at"] = observed_at
    if camera_id:
        payload["camera_id"] = camera_id
    headers = {"X-API-Key": api_key} if api_key else {}
    resp = requests.post(url, json=payload, headers=headers, timeout=10)
    body = resp.json()
    if resp.status_code == 200:
        print(f"✅ {lot_id} count={count} → {body['previous_status']} → {body['status']} ({body['transition']})")
    else:
        print(f"❌ {lot_id} count={count} → HTTP {resp.status_code}: {body.get('detail')}")
    return resp


def replay_file(url, path, api_key=None):
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            record = json.loads(line)
            post_observation(url, record["lot_id"], record["vehicle_count"],
                             record.get("observed_at"), record.get("camera_id"), api_key)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate lot count observations for testing")
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--lot", default="lot-001")
    parser.add_argument("--count", type=int, default=130)
    parser.add_argument("--at", default=None, help="ISO timestamp (default: now, UTC)")
    parser.add_argument("--camera", default="CAM-TEST")
    parser.add_argument("--replay", default=None, help="JSON-lines file of observations")
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    if args.replay:
        replay_file(args.url, args.replay, args.api_key)
    else:
        at = args.at or datetime.now(timezone.utc).isoformat()
        post_observation(args.url, args.lot, args.count, at, args.camera, args.api_key)
