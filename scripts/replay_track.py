"""Replay a recorded GPS track as periodic team location reports.

The track is a CSV file with ``latitude,longitude`` columns (a header row
is optional). Each point is sent to ``PUT /v1/teams/{team_id}/location``
on the configured interval, the way a team device reports its position.
"""

from __future__ import annotations

import argparse
import csv
import json
import time
from dataclasses import dataclass
from pathlib import Path
from urllib import request
from urllib.error import HTTPError, URLError


@dataclass
class ReplayContext:
    """Runtime context for location report requests."""

    api_base: str
    team_id: str
    user_id: str
    timeout_sec: float
    retries: int


def load_track(track_path: Path) -> list[tuple[float, float]]:
    points: list[tuple[float, float]] = []
    with track_path.open(encoding="utf-8", newline="") as handle:
        for row in csv.reader(handle):
            if not row or row[0].strip().startswith("#"):
                continue
            try:
                latitude, longitude = float(row[0]), float(row[1])
            except (ValueError, IndexError):
                if not points:
                    continue  # header
                raise ValueError(f"bad track row: {row}") from None
            if not -90.0 <= latitude <= 90.0 or not -180.0 <= longitude <= 180.0:
                raise ValueError(f"coordinates out of range: {row}")
            points.append((latitude, longitude))
    return points


def put_json(
    url: str,
    payload: dict,
    headers: dict[str, str],
    timeout_sec: float,
) -> dict:
    req = request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="PUT",
    )
    with request.urlopen(req, timeout=timeout_sec) as resp:
        return json.loads(resp.read().decode("utf-8"))


def report_location(
    context: ReplayContext,
    latitude: float,
    longitude: float,
) -> dict | None:
    url = f"{context.api_base}/v1/teams/{context.team_id}/location"
    payload = {"latitude": latitude, "longitude": longitude}
    for attempt in range(1, context.retries + 1):
        try:
            return put_json(
                url,
                payload,
                headers={"X-User-Id": context.user_id},
                timeout_sec=context.timeout_sec,
            )
        except HTTPError as error:
            # Client errors will not improve on retry.
            if error.code < 500:
                print(f"[ERROR] {error.code} {error.reason}")
                return None
            print(f"[WARN] attempt {attempt}/{context.retries}: {error}")
        except (URLError, OSError) as error:
            print(f"[WARN] attempt {attempt}/{context.retries}: {error}")
    return None


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--track", required=True, help="CSV file of lat,lng points")
    parser.add_argument("--team-id", required=True)
    parser.add_argument("--user-id", required=True, help="Owner of the team")
    parser.add_argument("--api-base", default="http://127.0.0.1:8000")
    parser.add_argument("--interval", type=float, default=10.0)
    parser.add_argument("--timeout", type=float, default=5.0)
    parser.add_argument("--retries", type=int, default=3)
    args = parser.parse_args()

    track_path = Path(args.track)
    if not track_path.exists():
        raise SystemExit(f"track file not found: {track_path}")

    points = load_track(track_path)
    if not points:
        raise SystemExit("no points in track")

    context = ReplayContext(
        api_base=args.api_base,
        team_id=args.team_id,
        user_id=args.user_id,
        timeout_sec=args.timeout,
        retries=max(1, args.retries),
    )
    print(f"[INFO] team_id={context.team_id}, points={len(points)}")

    for idx, (latitude, longitude) in enumerate(points):
        response = report_location(context, latitude, longitude)
        accepted = response is not None
        print(f"[POINT {idx}] {latitude:.6f},{longitude:.6f} -> accepted={accepted}")
        time.sleep(args.interval)

    print(f"[DONE] team_id={context.team_id}")


if __name__ == "__main__":
    main()
