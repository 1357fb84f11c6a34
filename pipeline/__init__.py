"""Lead deduplication, merge, scoring, import, and bulk enrichment engine.

Components, leaves first:
  similarity       pairwise lead similarity (pure)
  duplicates       cluster detection over a population snapshot
  merge / review   primary selection, merge policy, reviewer decisions
  csv_import       tabular ingestion with column detection
  scoring          composite lead-quality score
  bulk_enrichment  chunked, progress-tracked enrichment jobs
"""
