"""Lead engine — command-line entry point.

Wires the pipeline components to the PostgreSQL record store:
  import      bulk CSV import
  duplicates  list duplicate clusters
  merge       merge (or ignore) a cluster
  enrich      run a bulk enrichment job and follow its progress
  status      show a bulk enrichment job
  score       recompute lead scores
  export      write leads to CSV

Usage:
  python cli.py import leads.csv --business-type Roofing --skip-duplicates
  python cli.py duplicates --threshold 85
  python cli.py merge --lead-ids <id1> <id2> --primary <id1>
  python cli.py enrich --pending --batch-size 5
  python cli.py status bulk_1718000000000_ab12cd34e
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from db.connection import dispose_engine
from pipeline.bulk_enrichment import BulkEnrichmentOrchestrator, get_progress
from pipeline.config import load_bulk_settings
from pipeline.csv_import import import_csv
from pipeline.duplicates import find_duplicates, total_duplicates
from pipeline.errors import LeadEngineError
from pipeline.export import export_filename, export_leads_csv
from pipeline.review import apply_review_decision
from pipeline.scoring import rescore_lead
from pipeline.store import SqlRecordStore
from schemas.lead import LeadFilter, ReviewDecision
from tools.enrichment_tools import http_enricher

logger = logging.getLogger(__name__)


async def run_import(path: Path, business_type: str, skip_duplicates: bool) -> dict:
    print(f"\n[Import] Reading {path}...")
    result = await import_csv(
        SqlRecordStore(),
        path.read_bytes(),
        business_type=business_type,
        skip_duplicates=skip_duplicates,
    )
    print(f"  {result.message}")
    for detail in result.error_details[:20]:
        print(f"  - {detail}")
    if len(result.error_details) > 20:
        print(f"  ({len(result.error_details) - 20} more error lines)")
    return result.model_dump()


async def run_duplicates(threshold: Optional[float]) -> list:
    clusters = await find_duplicates(SqlRecordStore(), threshold)
    print(f"\n[Duplicates] {len(clusters)} clusters, {total_duplicates(clusters)} duplicate records")
    for cluster in clusters:
        print(f"\n  {cluster.cluster_id} (similarity {cluster.similarity:.1f})")
        for lead in cluster.leads:
            marker = "*" if lead.id == cluster.suggested_primary_id else " "
            print(f"   {marker} {lead.id}  {lead.business_name}  {lead.phone or ''}")
    return [cluster.model_dump() for cluster in clusters]


async def run_review(lead_ids: List[str], primary_id: Optional[str], ignore: bool) -> dict:
    decision = ReviewDecision(
        action="ignore" if ignore else "merge",
        lead_ids=lead_ids,
        primary_id=primary_id,
    )
    outcome = await apply_review_decision(SqlRecordStore(), decision)
    print(f"\n[Review] {outcome.message}")
    if outcome.merge:
        print(f"  Primary kept: {outcome.merge.primary.id}")
        print(f"  Removed: {', '.join(outcome.merge.merged_ids)}")
    return outcome.model_dump()


async def run_enrichment(
    lead_ids: List[str],
    pending: bool,
    batch_size: Optional[int],
    poll_seconds: float,
) -> dict:
    store = SqlRecordStore()
    if pending:
        leads = await store.fetch_leads(LeadFilter(enrichment_status="pending"))
        lead_ids = [lead.id for lead in leads]
    if not lead_ids:
        print("  No leads to enrich.")
        return {}

    orchestrator = BulkEnrichmentOrchestrator(store, http_enricher, load_bulk_settings())
    job_id = await orchestrator.submit(lead_ids, batch_size)
    print(f"\n[Enrich] Job {job_id} started for {len(lead_ids)} leads")

    waiter = asyncio.create_task(orchestrator.wait(job_id))
    progress = await get_progress(store, job_id)
    while not waiter.done():
        await asyncio.wait({waiter}, timeout=poll_seconds)
        progress = await get_progress(store, job_id)
        print(
            f"  {progress.status}: {progress.processed_leads}/{progress.total_leads} "
            f"({progress.progress_percentage}%) "
            f"ok={progress.successful_leads} failed={progress.failed_leads} "
            f"ETA: {progress.estimated_time_remaining or 'n/a'}"
        )
    if progress.error_summary:
        print(f"  Error: {progress.error_summary}")
    return progress.model_dump(mode="json")


async def run_status(job_id: str, log_limit: int) -> dict:
    progress = await get_progress(SqlRecordStore(), job_id, log_limit=log_limit)
    print(json.dumps(progress.model_dump(mode="json"), indent=2))
    return progress.model_dump(mode="json")


async def run_score(lead_ids: List[str]) -> dict:
    store = SqlRecordStore()
    results = {}
    for lead_id in lead_ids:
        scores = await rescore_lead(store, lead_id)
        results[lead_id] = scores.model_dump()
        print(f"  {lead_id}: total={scores.total_score} fit={scores.fit_score} "
              f"engagement={scores.engagement_score} contact={scores.contact_quality_score} "
              f"opportunity={scores.opportunity_score}")
    return results


async def run_export(
    out_dir: Path,
    min_score: Optional[int],
    business_type: Optional[str],
    enrichment_status: Optional[str],
    groups: List[str],
) -> Path:
    lead_filter = LeadFilter(
        min_score=min_score,
        business_type=business_type,
        enrichment_status=enrichment_status,
    )
    csv_text = await export_leads_csv(SqlRecordStore(), lead_filter, groups)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / export_filename(lead_filter)
    path.write_text(csv_text, encoding="utf-8")
    print(f"  Export written to {path}")
    return path


async def _run_and_dispose(coro):
    try:
        return await coro
    finally:
        await dispose_engine()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lead deduplication and enrichment engine")
    sub = parser.add_subparsers(dest="command")

    imp = sub.add_parser("import", help="Import leads from a CSV file")
    imp.add_argument("path", type=Path)
    imp.add_argument("--business-type", default="HVAC")
    imp.add_argument("--skip-duplicates", action="store_true", default=False)

    dup = sub.add_parser("duplicates", help="List duplicate clusters")
    dup.add_argument("--threshold", type=float, default=None, help="Similarity threshold 0-100")

    merge = sub.add_parser("merge", help="Merge or ignore a duplicate cluster")
    merge.add_argument("--lead-ids", nargs="+", required=True)
    merge.add_argument("--primary", default=None, help="Lead ID to keep (default: most complete)")
    merge.add_argument("--ignore", action="store_true", default=False, help="Mark as not duplicate")

    enrich = sub.add_parser("enrich", help="Run bulk enrichment")
    enrich.add_argument("--lead-ids", nargs="*", default=[])
    enrich.add_argument("--pending", action="store_true", default=False,
                        help="Enrich every lead with enrichment_status=pending")
    enrich.add_argument("--batch-size", type=int, default=None)
    enrich.add_argument("--poll-seconds", type=float, default=5.0)

    status = sub.add_parser("status", help="Show bulk enrichment job progress")
    status.add_argument("job_id")
    status.add_argument("--logs", type=int, default=10)

    score = sub.add_parser("score", help="Recompute scores for leads")
    score.add_argument("lead_ids", nargs="+")

    export = sub.add_parser("export", help="Export leads to CSV")
    export.add_argument("--out-dir", type=Path, default=Path(__file__).parent / "output")
    export.add_argument("--min-score", type=int, default=None)
    export.add_argument("--business-type", default=None)
    export.add_argument("--enrichment-status", default=None,
                        choices=["pending", "enriched", "failed"])
    export.add_argument("--fields", default="all",
                        help="Comma-separated groups: basic,contact,decision_makers,scoring,ai_analysis,status,tracking")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if args.command == "import":
        coro = run_import(args.path, args.business_type, args.skip_duplicates)
    elif args.command == "duplicates":
        coro = run_duplicates(args.threshold)
    elif args.command == "merge":
        coro = run_review(args.lead_ids, args.primary, args.ignore)
    elif args.command == "enrich":
        coro = run_enrichment(args.lead_ids, args.pending, args.batch_size, args.poll_seconds)
    elif args.command == "status":
        coro = run_status(args.job_id, args.logs)
    elif args.command == "score":
        coro = run_score(args.lead_ids)
    elif args.command == "export":
        groups = [g.strip() for g in args.fields.split(",") if g.strip()]
        coro = run_export(args.out_dir, args.min_score, args.business_type,
                          args.enrichment_status, groups)
    else:
        parser.print_help()
        return 1

    try:
        asyncio.run(_run_and_dispose(coro))
    except LeadEngineError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
