"""Admin dashboard endpoints. Every route here sits behind the auth gate."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import db, schemas
from ..auth import require_admin
from ..db import DatabaseUnavailable
from ..filters import StatusFilter, build_where
from .comments import invalid_status_detail
from .posts import POST_TAGS_SQL

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


POST_STATS_SQL = """
SELECT
    COUNT(*)::int AS total,
    COUNT(*) FILTER (WHERE status = 'published')::int AS published,
    COUNT(*) FILTER (WHERE status = 'draft')::int AS drafts,
    COUNT(*) FILTER (WHERE status = 'archived')::int AS archived
FROM posts
"""

COMMENT_STATS_SQL = """
SELECT
    COUNT(*)::int AS total,
    COUNT(*) FILTER (WHERE status = 'pending')::int AS pending,
    COUNT(*) FILTER (WHERE status = 'approved')::int AS approved,
    COUNT(*) FILTER (WHERE status = 'flagged')::int AS flagged,
    COUNT(*) FILTER (WHERE status = 'deleted')::int AS deleted
FROM comments
"""

VIEW_STATS_SQL = "SELECT COALESCE(SUM(view_count), 0)::int AS total FROM posts"

RECENT_POSTS_SQL = """
SELECT id, title, slug, status, published_at, created_at
FROM posts
ORDER BY created_at DESC
LIMIT 5
"""

RECENT_COMMENTS_SQL = """
SELECT c.id, c.author_name, c.content, c.status, c.created_at, p.title AS post_title
FROM comments c
LEFT JOIN posts p ON c.post_id = p.id
ORDER BY c.created_at DESC
LIMIT 5
"""

ALL_POSTS_SQL = """
SELECT
    p.id, p.title, p.slug, p.excerpt, p.status, p.featured,
    p.reading_time_minutes, p.view_count, p.category_id,
    p.published_at, p.created_at, p.updated_at,
    c.name AS category_name
FROM posts p
LEFT JOIN categories c ON p.category_id = c.id
ORDER BY p.created_at DESC
"""

POST_BY_ID_SQL = """
SELECT
    p.*,
    c.name AS category_name, c.slug AS category_slug,
    u.display_name AS author_name
FROM posts p
LEFT JOIN categories c ON p.category_id = c.id
LEFT JOIN users u ON p.author_id = u.id
WHERE p.id = :id
"""

ALL_COMMENTS_SQL = """
SELECT
    c.id, c.post_id, c.author_name, c.author_email, c.content,
    c.sentiment, c.sentiment_score, c.status, c.created_at,
    p.title AS post_title, p.slug AS post_slug
FROM comments c
LEFT JOIN posts p ON c.post_id = p.id
{where}
ORDER BY c.created_at DESC
"""


@router.get("/stats")
async def get_stats() -> dict:
    """
    Dashboard overview: post and comment counts, total views, recent activity.

    The five queries run concurrently on separate pooled connections. If any
    of them fails the whole request fails.
    """
    try:
        post_stats, comment_stats, view_stats, recent_posts, recent_comments = await asyncio.gather(
            db.query(POST_STATS_SQL),
            db.query(COMMENT_STATS_SQL),
            db.query(VIEW_STATS_SQL),
            db.query(RECENT_POSTS_SQL),
            db.query(RECENT_COMMENTS_SQL),
        )
    except DatabaseUnavailable:
        logger.error("Error fetching admin stats", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch admin stats",
        )

    return {
        "posts": post_stats.first(),
        "comments": comment_stats.first(),
        "views": view_stats.first(),
        "recentPosts": recent_posts.rows,
        "recentComments": recent_comments.rows,
    }


@router.get("/posts")
async def list_all_posts() -> list[dict]:
    """List posts of every status for the management UI, newest first."""
    try:
        result = await db.query(ALL_POSTS_SQL)
    except DatabaseUnavailable:
        logger.error("Error fetching admin posts", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch posts",
        )
    return result.rows


@router.get("/posts/{id}")
async def get_any_post(id: int) -> dict:
    """Get one post of any status, including content and tags, for the editor."""
    try:
        post = (await db.query(POST_BY_ID_SQL, {"id": id})).first()
        if post is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        tags = await db.query(POST_TAGS_SQL, {"post_id": id})
    except DatabaseUnavailable:
        logger.error("Error fetching admin post", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch post",
        )
    return {**post, "tags": tags.rows}


@router.get("/comments")
async def list_all_comments(status_filter: str | None = Query(None, alias="status")) -> list[dict]:
    """List comments of every status, optionally narrowed with ``?status=``."""
    filters = []
    if status_filter:
        if status_filter not in schemas.COMMENT_STATUSES:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=invalid_status_detail())
        filters.append(StatusFilter(status_filter, column="c.status"))
    where, params = build_where(filters)

    try:
        result = await db.query(ALL_COMMENTS_SQL.format(where=where), params)
    except DatabaseUnavailable:
        logger.error("Error fetching admin comments", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch comments",
        )
    return result.rows
