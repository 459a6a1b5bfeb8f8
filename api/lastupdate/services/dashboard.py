"""
Dashboard overview aggregates.

Metrics compare the selected window (last N days, today included) with the
window of the same length right before it. Admins see newsroom-wide numbers,
journalists only their own stories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from urllib.parse import quote

from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..settings import SEED_ADMIN_CPF

logger = logging.getLogger(__name__)

RANGE_DAYS: dict[str, int | None] = {
    "all": None,
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}
DEFAULT_RANGE = "30d"
MAX_WEEKS = 26
DAY_LABELS = ("Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb")  # Sunday first


@dataclass(frozen=True)
class Window:
    start: date | None
    end: date | None

    @property
    def bounded(self) -> bool:
        return self.start is not None


@dataclass(frozen=True)
class RangeBounds:
    key: str
    current: Window
    previous: Window


def parse_range(value: str | None) -> str:
    key = (value or DEFAULT_RANGE).strip().lower()
    return key if key in RANGE_DAYS else DEFAULT_RANGE


def range_bounds(value: str | None, today: date | None = None) -> RangeBounds:
    key = parse_range(value)
    days = RANGE_DAYS[key]
    if not days:
        return RangeBounds(key, Window(None, None), Window(None, None))
    today = today or models.utcnow().date()
    start = today - timedelta(days=days - 1)
    previous_end = start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=days - 1)
    return RangeBounds(key, Window(start, today), Window(previous_start, previous_end))


def percentage_change(current: int, previous: int | None) -> float | None:
    if previous is None:
        return None
    if not previous and not current:
        return 0.0
    if not previous:
        return 100.0
    return round((current - previous) / previous * 100, 2)


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _created_between(column, window: Window) -> list:
    conditions = []
    if window.start:
        conditions.append(column >= datetime.combine(window.start, time.min))
    if window.end:
        conditions.append(column <= datetime.combine(window.end, time.max))
    return conditions


def _published_filter(window: Window, author_id: int | None) -> list:
    conditions = [models.Publication.status == models.STATUS_PUBLISHED]
    conditions.extend(_created_between(models.Publication.created_at, window))
    if author_id is not None:
        conditions.append(models.Publication.author_id == author_id)
    return conditions


def _seed_admin_filter() -> list:
    if not SEED_ADMIN_CPF:
        return []
    return [models.Member.cpf != "".join(ch for ch in SEED_ADMIN_CPF if ch.isdigit())]


class DashboardService:
    """Builds the dashboard overview payload."""

    @staticmethod
    def metric_set(db: Session, window: Window, author_id: int | None) -> tuple[int, int, int]:
        publications, views, unique_views = (
            db.query(
                func.count(models.Publication.id),
                func.coalesce(func.sum(models.Publication.views), 0),
                func.coalesce(func.sum(models.Publication.unique_views), 0),
            )
            .filter(*_published_filter(window, author_id))
            .one()
        )
        return int(publications or 0), int(views or 0), int(unique_views or 0)

    @staticmethod
    def member_count(db: Session, window: Window) -> int:
        return (
            db.query(func.count(models.Member.id))
            .filter(
                models.Member.deleted_at.is_(None),
                *_created_between(models.Member.created_at, window),
            )
            .scalar()
            or 0
        )

    @staticmethod
    def metrics(db: Session, member: models.Member, bounds: RangeBounds) -> list[schemas.DashboardMetric]:
        author_id = None if member.is_admin else member.id
        current = DashboardService.metric_set(db, bounds.current, author_id)
        previous = (
            DashboardService.metric_set(db, bounds.previous, author_id)
            if bounds.current.bounded
            else (None, None, None)
        )

        if member.is_admin:
            keys = (
                ("total-publications", "Total de Publicações"),
                ("total-views", "Visualizações Totais"),
                ("total-unique-views", "Visualizações Únicas"),
            )
        else:
            keys = (
                ("my-publications", "Minhas Publicações"),
                ("my-views", "Minhas Visualizações"),
                ("my-unique-views", "Minhas Visualizações Únicas"),
            )

        metrics = [
            schemas.DashboardMetric(
                key=key,
                label=label,
                value=value,
                previous=prev,
                change_pct=percentage_change(value, prev),
            )
            for (key, label), value, prev in zip(keys, current, previous)
        ]

        if member.is_admin:
            members_now = DashboardService.member_count(db, bounds.current)
            members_before = (
                DashboardService.member_count(db, bounds.previous) if bounds.current.bounded else None
            )
            metrics.append(
                schemas.DashboardMetric(
                    key="total-members",
                    label="Total de Membros",
                    value=members_now,
                    previous=members_before,
                    change_pct=percentage_change(members_now, members_before),
                )
            )
        return metrics

    @staticmethod
    def weeks(db: Session, author_id: int | None, today: date | None = None) -> list[schemas.DashboardWeek]:
        """Sunday-start weeks that hold published stories, newest first (max 26)."""
        today = today or models.utcnow().date()
        query = db.query(func.min(models.Publication.date), func.max(models.Publication.date)).filter(
            models.Publication.status == models.STATUS_PUBLISHED
        )
        if author_id is not None:
            query = query.filter(models.Publication.author_id == author_id)
        min_date, max_date = query.one()

        min_week = week_start(min_date or today)
        cursor = week_start(min(max_date or today, today))
        weeks = []
        while len(weeks) < MAX_WEEKS and cursor >= min_week:
            weeks.append(schemas.DashboardWeek(value=cursor, label=f"Semana {_week_label(cursor)}"))
            cursor -= timedelta(days=7)
        if not weeks:
            current = week_start(today)
            weeks.append(schemas.DashboardWeek(value=current, label=f"Semana {_week_label(current)}"))
        return weeks

    @staticmethod
    def chart(db: Session, author_id: int | None, start: date) -> schemas.DashboardChart:
        days = [start + timedelta(days=offset) for offset in range(7)]
        query = (
            db.query(models.Publication.date, func.count(models.Publication.id))
            .filter(
                models.Publication.status == models.STATUS_PUBLISHED,
                models.Publication.date >= days[0],
                models.Publication.date <= days[-1],
            )
            .group_by(models.Publication.date)
        )
        if author_id is not None:
            query = query.filter(models.Publication.author_id == author_id)
        per_day = {day: count for day, count in query.all()}

        points = [schemas.ChartPoint(date=day, value=per_day.get(day, 0)) for day in days]
        return schemas.DashboardChart(
            week_start=start,
            labels=[DAY_LABELS[(day.weekday() + 1) % 7] for day in days],
            values=[point.value for point in points],
            points=points,
        )

    @staticmethod
    def top_publications(db: Session, author_id: int | None, window: Window, limit: int = 3) -> list[schemas.TopPublication]:
        rows = (
            db.query(models.Publication, models.Member.name)
            .join(models.Member, models.Member.id == models.Publication.author_id)
            .filter(*_published_filter(window, author_id))
            .order_by(models.Publication.views.desc(), models.Publication.created_at.desc())
            .limit(limit)
            .all()
        )
        return [
            schemas.TopPublication(
                id=publication.id,
                title=publication.title,
                slug=publication.slug,
                url=f"/noticia/{quote(publication.slug)}" if publication.slug else f"/noticia?id={publication.id}",
                date=publication.date,
                category=publication.category,
                views=publication.views or 0,
                unique_views=publication.unique_views or 0,
                author_id=publication.author_id,
                author_name=author_name,
                rank=index + 1,
            )
            for index, (publication, author_name) in enumerate(rows)
        ]

    @staticmethod
    def top_members(db: Session, window: Window, sort: str = "publications", limit: int = 5, offset: int = 0) -> schemas.TopMembers:
        sort = "views" if sort == "views" else "publications"
        limit = limit if limit > 0 else 5
        offset = max(offset, 0)

        join_on = and_(
            models.Publication.author_id == models.Member.id,
            *_published_filter(window, None),
        )
        publications = func.count(models.Publication.id).label("publications")
        views = func.coalesce(func.sum(models.Publication.views), 0).label("views")
        unique_views = func.coalesce(func.sum(models.Publication.unique_views), 0).label("unique_views")

        base = (
            db.query(models.Member.id, models.Member.name, models.Member.avatar_light, models.Member.avatar_dark, publications, views, unique_views)
            .outerjoin(models.Publication, join_on)
            .filter(models.Member.deleted_at.is_(None), *_seed_admin_filter())
            .group_by(models.Member.id)
            .having((func.count(models.Publication.id) > 0) | (func.coalesce(func.sum(models.Publication.views), 0) > 0))
        )
        total = base.count()

        primary, secondary = (views, publications) if sort == "views" else (publications, views)
        rows = (
            base.order_by(primary.desc(), secondary.desc(), func.lower(models.Member.name))
            .limit(limit)
            .offset(offset)
            .all()
        )
        items = [
            schemas.TopMember(
                id=row.id,
                name=row.name,
                avatar_light=row.avatar_light,
                avatar_dark=row.avatar_dark,
                publications=row.publications,
                views=row.views,
                unique_views=row.unique_views,
                rank=offset + index + 1,
            )
            for index, row in enumerate(rows)
        ]
        return schemas.TopMembers(
            sort=sort,
            items=items,
            total=total,
            limit=limit,
            offset=offset,
            has_more=total > offset + len(items),
        )

    @staticmethod
    def overview(
        db: Session,
        member: models.Member,
        range_key: str | None = None,
        selected_week: date | None = None,
        members_sort: str = "publications",
        members_limit: int = 5,
        members_offset: int = 0,
    ) -> schemas.DashboardOverview:
        bounds = range_bounds(range_key)
        author_id = None if member.is_admin else member.id

        weeks = DashboardService.weeks(db, author_id)
        available = {week.value for week in weeks}
        chosen = selected_week if selected_week in available else weeks[0].value

        return schemas.DashboardOverview(
            range=bounds.key,
            metrics=DashboardService.metrics(db, member, bounds),
            weeks=weeks,
            selected_week=chosen,
            chart=DashboardService.chart(db, author_id, chosen),
            top_publications=DashboardService.top_publications(db, author_id, bounds.current),
            top_members=(
                DashboardService.top_members(db, bounds.current, members_sort, members_limit, members_offset)
                if member.is_admin
                else None
            ),
        )


def _week_label(start: date) -> str:
    end = start + timedelta(days=6)
    return f"{start:%d/%m} - {end:%d/%m}"
