"""
Find (and optionally repair) test papers holding artifacts while not finalized.

Usage:
  python scripts/repair_artifacts.py                 # report only
  python scripts/repair_artifacts.py --apply         # force-clear every hit
  python scripts/repair_artifacts.py --institute <id> --apply
"""
from __future__ import annotations

import argparse
import json
import sys

from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.append(str(ROOT_DIR))

from dotenv import load_dotenv

from app import create_app
from app.services.paper_store import PaperStore
from app.services.paper_lifecycle import get_lifecycle_manager


def repair(institute_id: str | None, apply: bool) -> list[dict]:
    store = PaperStore()
    manager = get_lifecycle_manager()
    report = []
    for paper in store.find_inconsistent(institute_id):
        entry = {
            "paper_id": paper.id,
            "institute_id": paper.institute_id,
            "status": paper.status,
            "pdf_url": paper.pdf_url,
            "answer_key_url": paper.answer_key_url,
            "finalized_at": paper.finalized_at.isoformat() if paper.finalized_at else None,
        }
        if apply:
            if paper.pdf_url or paper.answer_key_url:
                entry["result"] = manager.force_clear_artifacts(
                    paper.id, paper.institute_id
                )
            if paper.finalized_at is not None:
                store.update_by_id(
                    paper.id,
                    paper.institute_id,
                    {"finalized_at": None},
                    expected_status=paper.status,
                )
                entry["finalized_at_cleared"] = True
        report.append(entry)
    return report


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--db", help="Database URI override.")
    parser.add_argument("--config", default="default")
    parser.add_argument("--institute", help="Limit the scan to one institute id.")
    parser.add_argument("--apply", action="store_true", help="Repair the rows found.")
    args = parser.parse_args()

    app = create_app(args.config, db_uri_override=args.db)
    with app.app_context():
        report = repair(args.institute, args.apply)

    print(json.dumps(report, ensure_ascii=False, indent=2, default=str))
    print(f"{len(report)} inconsistent paper(s){' repaired' if args.apply else ''}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
