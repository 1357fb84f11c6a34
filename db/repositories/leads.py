"""Lead repository — bulk fetch, dedup lookups, and field updates."""
import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import EnrichedLead

logger = logging.getLogger(__name__)

# Columns read by duplicate scans; never the full record.
MATCH_COLUMNS = (
    EnrichedLead.id,
    EnrichedLead.business_name,
    EnrichedLead.address,
    EnrichedLead.phone,
    EnrichedLead.owner_email,
    EnrichedLead.website,
    EnrichedLead.owner_name,
    EnrichedLead.owner_email_verified,
    EnrichedLead.owner_phone,
    EnrichedLead.total_score,
    EnrichedLead.enrichment_status,
)


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def get_by_id(session: AsyncSession, lead_id) -> Optional[EnrichedLead]:
    """Return the lead with this ID, or None."""
    key = _as_uuid(lead_id)
    if key is None:
        return None
    return await session.get(EnrichedLead, key)


def leads_query(
    ids: Optional[Sequence[str]] = None,
    business_type: Optional[str] = None,
    enrichment_status: Optional[str] = None,
    min_score: Optional[int] = None,
    order_by_score: bool = False,
) -> Select:
    """SELECT for full lead records matching the given field filters."""
    stmt = select(EnrichedLead)
    if ids is not None:
        keys = [k for k in (_as_uuid(i) for i in ids) if k is not None]
        stmt = stmt.where(EnrichedLead.id.in_(keys))
    if business_type:
        stmt = stmt.where(EnrichedLead.business_type == business_type)
    if enrichment_status:
        stmt = stmt.where(EnrichedLead.enrichment_status == enrichment_status)
    if min_score is not None:
        stmt = stmt.where(EnrichedLead.total_score >= min_score)
    if order_by_score:
        stmt = stmt.order_by(EnrichedLead.total_score.desc(), EnrichedLead.created_at)
    else:
        stmt = stmt.order_by(EnrichedLead.created_at, EnrichedLead.id)
    return stmt


async def list_leads(
    session: AsyncSession,
    ids: Optional[Sequence[str]] = None,
    business_type: Optional[str] = None,
    enrichment_status: Optional[str] = None,
    min_score: Optional[int] = None,
    order_by_score: bool = False,
) -> list[EnrichedLead]:
    """Return full lead records matching the given field filters."""
    result = await session.execute(
        leads_query(ids, business_type, enrichment_status, min_score, order_by_score)
    )
    return list(result.scalars().all())


async def get_match_candidates(session: AsyncSession) -> list:
    """Return (id + matching fields) rows for every lead in stable creation order."""
    result = await session.execute(
        select(*MATCH_COLUMNS).order_by(EnrichedLead.created_at, EnrichedLead.id)
    )
    return list(result.all())


async def find_matching(
    session: AsyncSession,
    business_name: Optional[str] = None,
    phone: Optional[str] = None,
    owner_email: Optional[str] = None,
) -> Optional[UUID]:
    """Return the ID of any lead sharing a name fragment, phone, or email.

    Name matches when an existing name contains the given one (case-insensitive).
    Empty criteria are ignored.
    """
    clauses = []
    if business_name and business_name.strip():
        pattern = f"%{_escape_like(business_name.strip())}%"
        clauses.append(EnrichedLead.business_name.ilike(pattern, escape="\\"))
    if phone and phone.strip():
        clauses.append(EnrichedLead.phone == phone)
    if owner_email and owner_email.strip():
        clauses.append(func.lower(EnrichedLead.owner_email) == owner_email.lower().strip())
    if not clauses:
        return None
    result = await session.execute(
        select(EnrichedLead.id).where(or_(*clauses)).limit(1)
    )
    return result.scalar_one_or_none()


async def insert(session: AsyncSession, data: dict) -> EnrichedLead:
    """Insert a new lead.

    data dict keys: any EnrichedLead column except id/created_at/updated_at.
    """
    lead = EnrichedLead(**data)
    session.add(lead)
    await session.flush()
    await session.refresh(lead)
    return lead


async def update_fields(
    session: AsyncSession, lead_id, patch: dict
) -> Optional[EnrichedLead]:
    """Apply a field patch to one lead and bump updated_at."""
    key = _as_uuid(lead_id)
    if key is None:
        return None
    values = {"updated_at": func.now(), **patch}
    result = await session.execute(
        update(EnrichedLead)
        .where(EnrichedLead.id == key)
        .values(**values)
        .returning(EnrichedLead),
        execution_options={"populate_existing": True},
    )
    await session.flush()
    return result.scalar_one_or_none()


async def delete_many(session: AsyncSession, lead_ids: Sequence[str]) -> int:
    """Delete leads by ID. Returns the count removed."""
    keys = [k for k in (_as_uuid(i) for i in lead_ids) if k is not None]
    if not keys:
        return 0
    result = await session.execute(
        delete(EnrichedLead).where(EnrichedLead.id.in_(keys)).returning(EnrichedLead.id)
    )
    await session.flush()
    count = len(result.fetchall())
    if count:
        logger.info("Deleted %d leads", count)
    return count
