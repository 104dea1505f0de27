"""
002 - social features: reactions, follows, shares and the unified content feed.
"""

from __future__ import annotations

from pgguard.domain.models import Migration
from pgguard.infrastructure.executor import QueryExecutor

TABLES = [
    """
    CREATE TABLE IF NOT EXISTS post_reactions (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        entity_type VARCHAR(50) NOT NULL,
        entity_id UUID NOT NULL,
        reaction_type VARCHAR(20) NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (user_id, entity_type, entity_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_connections (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        follower_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        following_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        status VARCHAR(20) DEFAULT 'pending',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE (follower_id, following_id),
        CHECK (follower_id != following_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_shares (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        entity_type VARCHAR(50) NOT NULL,
        entity_id UUID NOT NULL,
        shared_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS unified_content (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        author_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        company_id UUID REFERENCES companies(id) ON DELETE SET NULL,
        content_type VARCHAR(50) NOT NULL,
        title VARCHAR(255),
        content TEXT NOT NULL,
        image_url VARCHAR(500),
        metadata JSONB,
        is_published BOOLEAN DEFAULT false,
        published_at TIMESTAMP,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_post_reactions_user_id ON post_reactions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_post_reactions_entity ON post_reactions(entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_connections_follower_id ON user_connections(follower_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_connections_following_id ON user_connections(following_id)",
    "CREATE INDEX IF NOT EXISTS idx_content_shares_user_id ON content_shares(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_content_shares_entity ON content_shares(entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_unified_content_author_id ON unified_content(author_id)",
    "CREATE INDEX IF NOT EXISTS idx_unified_content_company_id ON unified_content(company_id)",
    "CREATE INDEX IF NOT EXISTS idx_unified_content_published ON unified_content(is_published, published_at)",
]

DROP_ORDER = ["unified_content", "content_shares", "user_connections", "post_reactions"]


def up(db: QueryExecutor) -> None:
    for statement in TABLES + INDEXES:
        db.execute(statement)


def down(db: QueryExecutor) -> None:
    for table in DROP_ORDER:
        db.execute(f"DROP TABLE IF EXISTS {table} CASCADE")


migration = Migration(version="002", name="social_features", up=up, down=down)
