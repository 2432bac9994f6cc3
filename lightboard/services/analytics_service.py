"""
Video analytics: view classification, aggregation and CSV export.

Each media view is stored once as a ViewEvent, classified as a *visit*
(under five seconds) or a *watch* (five seconds or more) at write time.
The dashboard reads a time window of events, enriched with the media title
and company name, and gets back the raw list plus a summary:

  - totals for visits, watches and all views
  - mean duration, rounded half-up to one decimal
  - per-item counts (events without an item only count toward totals)
  - per-day counts, keyed on the viewer's local calendar date

Reads are single queries with no retries; any database failure surfaces as
DataAccessError so callers never render partial aggregates.
"""

import csv
import io
import math
from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lightboard.core.database import as_utc
from lightboard.core.errors import DataAccessError
from lightboard.core.logging import get_logger
from lightboard.models.company import Company
from lightboard.models.media import MarketingMedia
from lightboard.models.view_event import ViewEvent, ViewType

logger = get_logger(__name__)

WATCH_THRESHOLD_SECONDS = 5
UNTITLED_ITEM = "Untitled Video"
UNKNOWN_OWNER = "Unknown Company"

CSV_HEADER = ["Date", "Video", "Company", "View Type", "Duration (seconds)", "User Agent"]
VIEW_TYPE_LABELS = {
    ViewType.VISIT: "Site Visit (<5s)",
    ViewType.WATCH: "Video Watch (5s+)",
}


# ── Result types ───────────────────────────────────────────────────────────────
class ViewWindow(BaseModel):
    """Inclusive [start, end] range over event creation time."""
    start: datetime
    end: datetime

    @property
    def inverted(self) -> bool:
        return as_utc(self.start) > as_utc(self.end)


class EnrichedViewEvent(BaseModel):
    id: str
    item_id: str | None
    view_type: ViewType
    duration_seconds: int = Field(ge=0)
    created_at: datetime
    user_agent: str | None = None
    item_title: str = UNTITLED_ITEM
    owner_name: str = UNKNOWN_OWNER


class ItemStats(BaseModel):
    title: str
    owner_name: str
    visit_count: int = 0
    watch_count: int = 0


class DateStats(BaseModel):
    date: str
    visit_count: int = 0
    watch_count: int = 0


class AggregateSummary(BaseModel):
    total_visits: int = 0
    total_watches: int = 0
    total_views: int = 0
    avg_duration_seconds: float = 0
    by_item: dict[str, ItemStats] = Field(default_factory=dict)
    by_date: list[DateStats] = Field(default_factory=list)


class AnalyticsResult(BaseModel):
    events: list[EnrichedViewEvent]
    summary: AggregateSummary


# ── Classification ─────────────────────────────────────────────────────────────
def classify(duration_seconds: int) -> ViewType:
    """A view of WATCH_THRESHOLD_SECONDS or longer is a watch; anything shorter a visit."""
    if duration_seconds >= WATCH_THRESHOLD_SECONDS:
        return ViewType.WATCH
    return ViewType.VISIT


def _round_half_up(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def _local_date(moment: datetime, tz: ZoneInfo) -> str:
    return as_utc(moment).astimezone(tz).date().isoformat()


# ── Aggregation ────────────────────────────────────────────────────────────────
def summarize(events: list[EnrichedViewEvent], tz: ZoneInfo) -> AggregateSummary:
    """
    Build the summary for an already-fetched, enriched event list.

    Counting uses the stored view_type, never a reclassification of the
    duration. Per-item metadata comes from the item's most recent event.
    """
    if not events:
        return AggregateSummary()

    total_visits = 0
    total_watches = 0
    by_item: dict[str, ItemStats] = {}
    item_seen_at: dict[str, datetime] = {}
    by_date: dict[str, DateStats] = {}

    for event in events:
        is_watch = event.view_type == ViewType.WATCH
        if is_watch:
            total_watches += 1
        else:
            total_visits += 1

        if event.item_id is not None:
            stats = by_item.get(event.item_id)
            if stats is None:
                stats = by_item[event.item_id] = ItemStats(
                    title=event.item_title, owner_name=event.owner_name
                )
                item_seen_at[event.item_id] = as_utc(event.created_at)
            elif as_utc(event.created_at) > item_seen_at[event.item_id]:
                stats.title = event.item_title
                stats.owner_name = event.owner_name
                item_seen_at[event.item_id] = as_utc(event.created_at)

            if is_watch:
                stats.watch_count += 1
            else:
                stats.visit_count += 1

        day = _local_date(event.created_at, tz)
        day_stats = by_date.setdefault(day, DateStats(date=day))
        if is_watch:
            day_stats.watch_count += 1
        else:
            day_stats.visit_count += 1

    avg = sum(e.duration_seconds for e in events) / len(events)

    return AggregateSummary(
        total_visits=total_visits,
        total_watches=total_watches,
        total_views=total_visits + total_watches,
        avg_duration_seconds=_round_half_up(avg),
        by_item=by_item,
        by_date=sorted(by_date.values(), key=lambda d: datetime.fromisoformat(d.date)),
    )


async def fetch_events(db: AsyncSession, window: ViewWindow) -> list[EnrichedViewEvent]:
    """
    Fetch events created inside ``window``, newest first, with the media title
    and company name resolved. Missing items or companies fall back to
    UNTITLED_ITEM / UNKNOWN_OWNER rather than dropping the event.
    """
    stmt = (
        select(ViewEvent, MarketingMedia.description, Company.name)
        .outerjoin(MarketingMedia, ViewEvent.item_id == MarketingMedia.id)
        .outerjoin(Company, MarketingMedia.company_id == Company.id)
        .where(
            ViewEvent.created_at >= as_utc(window.start),
            ViewEvent.created_at <= as_utc(window.end),
        )
        .order_by(ViewEvent.created_at.desc(), ViewEvent.id)
    )

    try:
        result = await db.execute(stmt)
        rows = result.all()
    except SQLAlchemyError as e:
        logger.error("analytics.fetch_failed", error=str(e))
        raise DataAccessError("Could not load view events") from e

    events: list[EnrichedViewEvent] = []
    for event, title, owner in rows:
        # An unknown view_type or a negative duration fails validation
        try:
            enriched = EnrichedViewEvent(
                id=event.id,
                item_id=event.item_id,
                view_type=event.view_type,
                duration_seconds=event.duration_seconds,
                created_at=as_utc(event.created_at),
                user_agent=event.user_agent,
                item_title=title or UNTITLED_ITEM,
                owner_name=owner or UNKNOWN_OWNER,
            )
        except ValidationError as e:
            logger.error(
                "analytics.malformed_row",
                event_id=event.id,
                view_type=event.view_type,
                duration_seconds=event.duration_seconds,
            )
            raise DataAccessError(f"View event {event.id} is malformed") from e
        events.append(enriched)
    return events


async def fetch_and_summarize(
    db: AsyncSession, window: ViewWindow, tz: ZoneInfo
) -> AnalyticsResult:
    if window.inverted:
        logger.warning("analytics.window_inverted", start=window.start, end=window.end)
        return AnalyticsResult(events=[], summary=AggregateSummary())

    events = await fetch_events(db, window)
    summary = summarize(events, tz)

    logger.info(
        "analytics.summary_built",
        start=window.start.isoformat(),
        end=window.end.isoformat(),
        tz=str(tz),
        total_views=summary.total_views,
        items=len(summary.by_item),
        days=len(summary.by_date),
    )
    return AnalyticsResult(events=events, summary=summary)


# ── Export ─────────────────────────────────────────────────────────────────────
def export_csv(events: list[EnrichedViewEvent], tz: ZoneInfo) -> bytes:
    """
    One quoted row per event, in the order given, under a plain header row.
    Embedded quotes are doubled; nothing else is escaped.
    """
    if not events:
        return b""

    output = io.StringIO()
    output.write(",".join(CSV_HEADER) + "\n")

    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for event in events:
        writer.writerow([
            as_utc(event.created_at).astimezone(tz).strftime("%Y-%m-%d %H:%M:%S"),
            event.item_title,
            event.owner_name,
            VIEW_TYPE_LABELS[event.view_type],
            str(event.duration_seconds),
            event.user_agent or "",
        ])

    return output.getvalue().removesuffix("\n").encode("utf-8")


def export_filename(window: ViewWindow, prefix: str = "video-analytics") -> str:
    start = as_utc(window.start).date().isoformat()
    end = as_utc(window.end).date().isoformat()
    return f"{prefix}-{start}-to-{end}.csv"


# ── Producer path ──────────────────────────────────────────────────────────────
async def record_view(
    db: AsyncSession,
    item_id: str | None,
    duration_seconds: int,
    user_agent: str | None = None,
) -> ViewEvent:
    """
    Insert one completed viewing session.

    Raises ValueError for a negative duration and DataAccessError when the
    write fails.
    """
    if duration_seconds < 0:
        raise ValueError(f"duration_seconds must be non-negative, got {duration_seconds}")

    event = ViewEvent(
        item_id=item_id,
        view_type=classify(duration_seconds).value,
        duration_seconds=duration_seconds,
        user_agent=user_agent[:500] if user_agent else None,
    )
    try:
        db.add(event)
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("analytics.record_failed", item_id=item_id, error=str(e))
        raise DataAccessError("Could not record view event") from e

    logger.info(
        "analytics.view_recorded",
        event_id=event.id,
        item_id=item_id,
        view_type=event.view_type,
        duration_seconds=duration_seconds,
    )
    return event
