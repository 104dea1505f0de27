"""
Allowlists of table and column names that may be embedded in SQL text.

Identifiers cannot be bound as query parameters, so every table or column name a
caller supplies is checked against a fixed vocabulary before it is concatenated
into a statement. The column set is shared across all tables.

Contract for columns is fail-closed: ``filter_allowed_columns`` is a plain filter,
but every repository call site goes through ``require_columns``, which raises
``InvalidColumnsError`` as soon as the filter would drop anything. Names are
normalized to lowercase, matching how PostgreSQL folds unquoted identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List

from pgguard.errors import InvalidColumnsError, InvalidTableError

DEFAULT_TABLES: FrozenSet[str] = frozenset(
    {
        "users", "companies", "user_companies", "network_connections",
        "funding_opportunities", "funding_applications", "forum_posts", "events",
        "messages", "news_articles", "content_sections", "admin_activity_log",
        "activity_feed", "forum_categories", "forum_topics", "forum_replies",
        "social_license_agreements", "network_companies", "company_applications",
        "admin_users", "file_uploads", "projects", "collaboration_meetings",
        "user_connections", "post_reactions", "bookmarks", "content_shares",
        "company_news", "unified_content",
    }
)

DEFAULT_COLUMNS: FrozenSet[str] = frozenset(
    {
        # users / profiles
        "id", "email", "password_hash", "role", "created_at", "updated_at",
        "first_name", "last_name", "phone", "bio", "location", "website",
        "linkedin", "twitter", "profile_image", "is_active", "email_verified",
        "last_login",
        # companies
        "name", "description", "industry", "sector", "size", "logo", "status",
        "logo_url", "logo_file_path", "countries", "employees", "created_by",
        "is_shared_wealth_licensed", "license_number", "license_date",
        "created_by_admin",
        # memberships and network
        "user_id", "company_id", "connected_company_id", "connection_strength",
        "shared_projects", "collaboration_score", "is_primary", "joined_at",
        "position", "follower_id", "following_id", "connection_type",
        # funding, events, content
        "title", "category", "amount", "amount_min", "amount_max", "deadline",
        "eligibility", "url", "content", "start_date", "end_date",
        "max_participants", "event_date", "organizer_id", "organization",
        "image_url",
        # messaging
        "recipient_id", "sender_id", "message", "message_type", "attachments",
        "reply_to_id", "is_read", "read_at",
        # applications
        "applicant_user_id", "applicant_role", "applicant_position",
        "company_name", "applicant_name", "applicant_email", "applicant_phone",
        "company_sector", "company_size", "company_location", "company_website",
        "company_description", "business_model", "shared_wealth_commitment",
        "expected_impact", "application_status", "review_notes", "reviewed_by",
        "reviewed_at",
        # uploads
        "filename", "original_filename", "file_path", "file_size", "mime_type",
        "upload_type", "uploaded_by", "related_entity_type", "related_entity_id",
        # projects and meetings
        "project_type", "budget", "currency", "participants",
        "project_manager_id", "meeting_title", "meeting_date", "meeting_notes",
        "outcomes", "impact_score", "shared_wealth_contribution", "meeting_type",
        # social
        "post_id", "post_type", "reaction_type", "entity_type", "entity_id",
        "bookmarked_id", "bookmarked_type", "content_id", "content_type",
        "share_type", "platform", "shared_at", "author_id", "tags",
        "media_urls", "is_published", "published_at", "type", "metadata",
        "reactions", "comments_count", "shares_count", "views_count", "action",
    }
)


def _normalize(name: object) -> str:
    if not isinstance(name, str):
        return ""
    return name.strip().lower()


@dataclass(frozen=True)
class Allowlist:
    """
    Immutable pair of permitted table and column names.

    Instances are passed to the repository at construction time so tests can
    substitute a restricted vocabulary without touching process-wide state.
    """

    tables: FrozenSet[str] = field(default=DEFAULT_TABLES)
    columns: FrozenSet[str] = field(default=DEFAULT_COLUMNS)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", frozenset(_normalize(t) for t in self.tables))
        object.__setattr__(self, "columns", frozenset(_normalize(c) for c in self.columns))

    def is_allowed_table(self, name: object) -> bool:
        normalized = _normalize(name)
        return bool(normalized) and normalized in self.tables

    def filter_allowed_columns(self, names: Iterable[object]) -> List[str]:
        """
        Return the allowlisted subset of ``names``, lowercased, in input order.

        This never raises. Callers that must not lose a name use
        ``require_columns`` instead.
        """
        allowed = []
        for name in names:
            normalized = _normalize(name)
            if normalized and normalized in self.columns:
                allowed.append(normalized)
        return allowed

    def require_table(self, name: object) -> str:
        if not self.is_allowed_table(name):
            raise InvalidTableError(name)
        return _normalize(name)

    def require_columns(self, names: Iterable[object]) -> List[str]:
        """
        Validate every name, failing the whole call if any one is rejected.
        """
        names = list(names)
        allowed = self.filter_allowed_columns(names)
        if len(allowed) != len(names):
            rejected = [n for n in names if not self.filter_allowed_columns([n])]
            raise InvalidColumnsError(rejected)

        duplicates = sorted({c for c in allowed if allowed.count(c) > 1})
        if duplicates:
            raise InvalidColumnsError(duplicates, reason="duplicated after normalization")
        return allowed


DEFAULT_ALLOWLIST = Allowlist()


def is_allowed_table(name: object) -> bool:
    return DEFAULT_ALLOWLIST.is_allowed_table(name)


def filter_allowed_columns(names: Iterable[object]) -> List[str]:
    return DEFAULT_ALLOWLIST.filter_allowed_columns(names)


__all__ = [
    "Allowlist",
    "DEFAULT_ALLOWLIST",
    "DEFAULT_COLUMNS",
    "DEFAULT_TABLES",
    "filter_allowed_columns",
    "is_allowed_table",
]
