"""Run one SLA escalation sweep from cron or by hand."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from civicsense.core.config import settings  # noqa: E402
from civicsense.core.logging import setup_logging  # noqa: E402
from civicsense.db.session import SessionLocal  # noqa: E402
from civicsense.services.escalation import run_escalation_sweep  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Escalate active reports that passed their SLA thresholds")
    parser.add_argument("--holder", default="", help="Lease holder name (defaults to host:pid)")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    setup_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        result = run_escalation_sweep(db, holder=args.holder.strip() or None)
    finally:
        db.close()
    print(json.dumps(result.to_dict(), indent=2))
    return 1 if result.failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
