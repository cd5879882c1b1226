#!/usr/bin/env python
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, inspect, text

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from site_tracker.settings import get_settings

EXPECTED_HEAD = "0001_initial"

ORPHAN_CHECKS: dict[str, str] = {
    "sites_unknown_district": """
        select s.id
        from sites s
        left join districts d on d.name = s.district
        where d.id is null
        limit 20
    """,
    "staff_orphan_site": """
        select x.id
        from staff x
        left join sites s on s.id = x.site_id
        where x.site_id is not null and s.id is null
        limit 20
    """,
    "assets_orphan_site": """
        select x.id
        from assets x
        left join sites s on s.id = x.site_id
        where x.site_id is not null and s.id is null
        limit 20
    """,
    "programs_orphan_site": """
        select x.id
        from programs x
        left join sites s on s.id = x.site_id
        where x.site_id is not null and s.id is null
        limit 20
    """,
}


def run() -> dict[str, Any]:
    database_url = get_settings().database_url
    engine = create_engine(database_url)
    report: dict[str, Any] = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database_url": engine.url.render_as_string(hide_password=True),
        "checks": [],
    }

    def add(name: str, status: str, details: dict[str, Any]) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    tables = set(inspect(engine).get_table_names())
    with engine.connect() as conn:
        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        required = ["districts", "users", "sites", "staff", "assets", "programs", "activities"]
        missing = [table for table in required if table not in tables]
        add("missing_tables", "fail" if missing else "ok", {"missing": missing})

        for name, query in ORPHAN_CHECKS.items():
            if name.split("_", 1)[0] not in tables:
                continue
            rows = conn.execute(text(query)).fetchall()
            add(name, "fail" if rows else "ok", {"sample_ids": [row[0] for row in rows]})

    engine.dispose()
    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2))
