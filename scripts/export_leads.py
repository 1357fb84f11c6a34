"""Write CSV snapshots of the lead table to EXPORT_DIR.

Run after an import or enrichment pass:

    uv run python scripts/export_leads.py

Produces one full export (every field group, highest score first) and one
file per business type present in the table.

EXPORT_DIR controls the output directory (default: ./exports).
EXPORT_MIN_SCORE restricts every file to leads at or above that total score.
"""
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Resolve project root so imports work when run from any cwd
_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_ROOT))

from db.connection import dispose_engine
from pipeline.export import export_filename, export_leads_csv
from pipeline.store import SqlRecordStore
from schemas.lead import LeadFilter

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger(__name__)

EXPORT_DIR = Path(os.environ.get("EXPORT_DIR", str(_ROOT / "exports")))


def _min_score() -> Optional[int]:
    raw = os.environ.get("EXPORT_MIN_SCORE")
    return int(raw) if raw else None


async def _write(store: SqlRecordStore, export_dir: Path, lead_filter: LeadFilter) -> Path:
    csv_text = await export_leads_csv(store, lead_filter)
    path = export_dir / export_filename(lead_filter)
    path.write_text(csv_text, encoding="utf-8")
    return path


async def main() -> None:
    EXPORT_DIR.mkdir(parents=True, exist_ok=True)
    logger.info("Exporting to %s ...", EXPORT_DIR.resolve())

    store = SqlRecordStore()
    min_score = _min_score()
    try:
        path = await _write(store, EXPORT_DIR, LeadFilter(min_score=min_score))
        logger.info("  %s", path.name)

        leads = await store.fetch_leads(LeadFilter(min_score=min_score))
        business_types = sorted({lead.business_type for lead in leads if lead.business_type})
        for business_type in business_types:
            path = await _write(
                store, EXPORT_DIR, LeadFilter(min_score=min_score, business_type=business_type)
            )
            logger.info("  %s", path.name)

        logger.info("Done. %d leads, %d business-type files", len(leads), len(business_types))
    finally:
        await dispose_engine()


if __name__ == "__main__":
    asyncio.run(main())
