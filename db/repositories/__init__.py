"""Repository layer for the lead engine.

Provides query and write helpers for the persisted entities:
- leads: get_by_id, list_leads, get_match_candidates, find_matching,
         insert, update_fields, delete_many
- jobs: create_job, get_job, update_job, append_log, get_recent_logs
"""
