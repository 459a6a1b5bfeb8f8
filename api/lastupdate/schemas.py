from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# HEALTH & CONFIG
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


class ApiInfo(BaseModel):
    """API root descriptor."""

    api: str = "The Last Update"
    version: int = 1


# ============================================================================
# MEMBER SCHEMAS
# ============================================================================


class AuthorRef(BaseModel):
    """Compact author reference embedded in publication payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    avatar_light: str | None = None
    avatar_dark: str | None = None


class MemberPublic(BaseModel):
    """Public profile of a journalist."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: str
    team_member: bool
    publication_count: int
    avatar_light: str
    avatar_dark: str
    city: str | None = None
    about: str | None = None
    what_they_do: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    social_email: str | None = None
    is_active: bool


class Member(MemberPublic):
    """Full member record as seen by the member themselves or an admin."""

    email: str
    cpf: str
    birth_date: dt.date
    phone: str | None = None
    password_changed: bool
    deleted_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class MemberCreate(BaseModel):
    """Payload for registering a member. ``birth_date`` accepts YYYY-MM-DD or DD/MM/YYYY."""

    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    cpf: str
    birth_date: str
    role: str = "journalist"
    team_member: bool = True
    phone: str | None = None
    city: str | None = None
    about: str | None = Field(None, max_length=200)
    what_they_do: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    social_email: str | None = None


class MemberUpdate(BaseModel):
    """Partial member update (admin)."""

    name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, min_length=3, max_length=320)
    cpf: str | None = None
    birth_date: str | None = None
    role: str | None = None
    team_member: bool | None = None
    phone: str | None = None
    city: str | None = None
    about: str | None = Field(None, max_length=200)
    what_they_do: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    social_email: str | None = None
    password: str | None = Field(None, min_length=6)
    reset_password: bool = False


class MemberTextUpdate(BaseModel):
    """Single free-text field update (about / what they do)."""

    value: str | None = None


class MemberStats(BaseModel):
    publications: int
    exclusions: int


class MemberDetails(BaseModel):
    """Admin view of a member with publishing statistics."""

    member: Member
    stats: MemberStats
    latest_publications: list[PublicationSummary]


# ============================================================================
# AUTH & PROFILE
# ============================================================================


class LoginRequest(BaseModel):
    cpf: str | None = None
    password: str | None = None


class SessionResponse(BaseModel):
    """Authenticated session descriptor."""

    member: Member
    token: str | None = None
    session_expires_at: datetime | None = None


class ProfileUpdate(BaseModel):
    """Self-service profile update."""

    name: str | None = Field(None, min_length=1, max_length=200)
    email: str | None = Field(None, min_length=3, max_length=320)
    phone: str | None = None
    city: str | None = None
    about: str | None = Field(None, max_length=200)
    what_they_do: str | None = None
    instagram: str | None = None
    linkedin: str | None = None
    twitter: str | None = None
    social_email: str | None = None
    avatar_data_url: str | None = None
    avatar_url: str | None = None


class PasswordChange(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


# ============================================================================
# PUBLICATION SCHEMAS
# ============================================================================


class PublicationSummary(BaseModel):
    """Publication card as listed on the public site and dashboards."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str | None = None
    date: dt.date
    category: str
    description: str | None = None
    image: str | None = None
    image_credit: str | None = None
    status: str
    views: int
    unique_views: int
    is_highlighted: bool
    author_id: int
    author: AuthorRef | None = None


class Publication(PublicationSummary):
    """Full publication including its HTML body."""

    content: str | None = None
    deletion_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class PublicationCreate(BaseModel):
    """New publication. Required fields are checked by the service to report MISSING_FIELDS."""

    title: str | None = None
    date: dt.date | None = None
    category: str | None = None
    description: str | None = None
    image: str | None = None
    image_credit: str | None = None
    content: str | None = None
    status: str | None = None
    author_id: int | None = None


class PublicationUpdate(BaseModel):
    """Partial publication update; ``status`` goes through the lifecycle rules."""

    title: str | None = None
    date: dt.date | None = None
    category: str | None = None
    description: str | None = None
    image: str | None = None
    image_credit: str | None = None
    content: str | None = None
    status: str | None = None
    author_id: int | None = None
    deletion_reason: str | None = None


class PublicationDelete(BaseModel):
    reason: str | None = None


class HighlightCard(BaseModel):
    card_number: int
    publication: PublicationSummary | None = None


class HighlightPin(BaseModel):
    publication_id: int


# ============================================================================
# NOTIFICATIONS
# ============================================================================


class Notification(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    to_user_id: int | None = None
    to_role: str | None = None
    title: str
    message: str
    url: str | None = None
    meta: dict[str, Any] | None = None
    read_at: datetime | None = None
    created_at: datetime


class NotificationCreate(BaseModel):
    title: str | None = None
    message: str | None = None
    url: str | None = None
    to_user_id: int | None = None
    to_role: str | None = None
    meta: dict[str, Any] | None = None


class UnreadCount(BaseModel):
    unread_count: int


# ============================================================================
# PUSH
# ============================================================================


class PushConfig(BaseModel):
    enabled: bool
    public_key: str | None = None


class PushKeys(BaseModel):
    auth: str | None = None
    p256dh: str | None = None


class PushSubscriptionInfo(BaseModel):
    """Browser ``PushSubscription.toJSON()`` shape."""

    endpoint: str = Field(..., min_length=1)
    keys: PushKeys = Field(default_factory=PushKeys)
    expiration_time: float | None = Field(None, alias="expirationTime")

    model_config = ConfigDict(populate_by_name=True)


class PushSubscribeRequest(BaseModel):
    subscription: PushSubscriptionInfo
    preference: Literal["accepted", "dismissed", "denied"] = "accepted"


class PushSubscribeResponse(BaseModel):
    id: int
    ok: bool = True
    preference: str


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


# ============================================================================
# DASHBOARD
# ============================================================================


class DashboardMetric(BaseModel):
    key: str
    label: str
    value: int
    previous: int | None = None
    change_pct: float | None = None


class DashboardWeek(BaseModel):
    value: dt.date
    label: str


class ChartPoint(BaseModel):
    date: dt.date
    value: int


class DashboardChart(BaseModel):
    """Published stories per day for one Sunday-start week."""

    week_start: dt.date
    labels: list[str]
    values: list[int]
    points: list[ChartPoint]


class TopPublication(BaseModel):
    id: int
    title: str
    slug: str | None = None
    url: str
    date: dt.date
    category: str
    views: int
    unique_views: int
    author_id: int
    author_name: str | None = None
    rank: int


class TopMember(BaseModel):
    id: int
    name: str
    avatar_light: str | None = None
    avatar_dark: str | None = None
    publications: int
    views: int
    unique_views: int
    rank: int


class TopMembers(BaseModel):
    sort: Literal["publications", "views"]
    items: list[TopMember]
    total: int
    limit: int
    offset: int
    has_more: bool


class DashboardOverview(BaseModel):
    range: str
    metrics: list[DashboardMetric]
    weeks: list[DashboardWeek]
    selected_week: dt.date
    chart: DashboardChart
    top_publications: list[TopPublication]
    top_members: TopMembers | None = None


# ============================================================================
# PUBLIC SITE
# ============================================================================


class JournalistProfile(BaseModel):
    """Public journalist page: profile, counters and their published stories."""

    member: MemberPublic
    profile_url: str
    stats: MemberStats
    publications: list[PublicationSummary]
    requested_name: str | None = None
    name_matches_request: bool | None = None


class LatestPublication(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str | None = None
    date: dt.date
    category: str


class SearchResult(PublicationSummary):
    """Search hit; ``content`` is included so the results page can build excerpts."""

    content: str | None = None
    reading_minutes: int


class UploadResponse(BaseModel):
    ok: bool = True
    url: str
    name: str


class YouTubeVideo(BaseModel):
    video_id: str
    title: str
    url: str
    published_at: str | None = None
    thumbnail: str
    thumbnail_source: str | None = None
    duration_seconds: int | None = None
    duration_display: str | None = None
    view_count: int | None = None
    type: Literal["video", "short"] = "video"


class YouTubeLatest(BaseModel):
    channel_id: str
    items: list[YouTubeVideo]


class YouTubeVideoPage(BaseModel):
    channel_id: str
    page: int
    limit: int
    total: int
    items: list[YouTubeVideo]


MemberDetails.model_rebuild()
