"""Insert the default SLA targets and issue-type priority weights."""

from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from civicsense.db.session import SessionLocal  # noqa: E402
from civicsense.services.reference_data import seed_reference_data  # noqa: E402


def main() -> None:
    db = SessionLocal()
    try:
        sla_added, rules_added = seed_reference_data(db)
        db.commit()
        print(f"inserted_sla_rows={sla_added}")
        print(f"inserted_priority_rules={rules_added}")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
