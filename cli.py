from __future__ import annotations

import argparse
import dataclasses
import json
import sys

import requests

from guardian.health import HealthEvaluator
from guardian.settings import settings
from guardian.specs import FileSpecSource, SpecSourceError
from guardian.supervisor import get_supervisor


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def run_check(conf_path: str, supervisor: str) -> int:
    """Evaluate every enabled service once. No restarts, no accounting."""
    s = dataclasses.replace(settings, conf_path=conf_path, supervisor=supervisor)
    try:
        specs = FileSpecSource(s.conf_path)()
    except SpecSourceError as e:
        print(str(e), file=sys.stderr)
        return 2
    evaluator = HealthEvaluator(get_supervisor(s), s=s)
    results = []
    for spec in specs:
        if not spec.enabled:
            continue
        ok, reason = evaluator.evaluate(spec)
        results.append({"service": spec.name, "healthy": ok, "reason": reason})
    _print(results)
    return 0 if all(r["healthy"] for r in results) else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Service Guardian CLI")
    p.add_argument("--api", default="http://localhost:8000", help="Status API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_chk = sub.add_parser("check", help="Evaluate services once, locally")
    s_chk.add_argument("--config", default=settings.conf_path)
    s_chk.add_argument("--supervisor", choices=["systemd", "docker"], default=settings.supervisor)

    sub.add_parser("status", help="Guardian status")

    s_svc = sub.add_parser("services", help="Per-service counters and availability")
    s_svc.add_argument("name", nargs="?", help="Only this service")

    sub.add_parser("report", help="Availability report")

    s_ev = sub.add_parser("events", help="Recent health/incident events")
    s_ev.add_argument("--kind", choices=["health", "incident"])
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd == "check":
        return run_check(args.config, args.supervisor)

    base = args.api.rstrip("/")

    if args.cmd == "status":
        _print(requests.get(f"{base}/health", timeout=10).json())
        return 0

    if args.cmd == "services":
        url = f"{base}/services/{args.name}" if args.name else f"{base}/services"
        r = requests.get(url, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "report":
        r = requests.get(f"{base}/report", timeout=10)
        print(r.text)
        return 0 if r.ok else 1

    if args.cmd == "events":
        params = {"limit": args.limit}
        if args.kind:
            params["kind"] = args.kind
        _print(requests.get(f"{base}/events", params=params, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
