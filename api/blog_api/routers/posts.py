"""Blog post endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import db, schemas
from ..auth import require_admin
from ..db import DatabaseUnavailable
from ..filters import (
    Assign,
    AssignExpr,
    CategoryFilter,
    Filter,
    SearchFilter,
    StatusFilter,
    TagFilter,
    build_set_clause,
    build_where,
)
from ..utils.background import fire_and_forget
from ..utils.text import reading_time_minutes, slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/posts", tags=["Posts"])


LIST_POSTS_SQL = """
SELECT
    p.id, p.title, p.slug, p.excerpt, p.cover_image_url,
    p.featured, p.reading_time_minutes, p.view_count, p.published_at,
    c.name AS category_name, c.slug AS category_slug,
    u.display_name AS author_name,
    COALESCE(
        json_agg(json_build_object('name', t.name, 'slug', t.slug))
        FILTER (WHERE t.id IS NOT NULL), '[]'
    ) AS tags
FROM posts p
LEFT JOIN categories c ON p.category_id = c.id
LEFT JOIN users u ON p.author_id = u.id
LEFT JOIN post_tags pt ON p.id = pt.post_id
LEFT JOIN tags t ON pt.tag_id = t.id
{where}
GROUP BY p.id, c.name, c.slug, u.display_name
ORDER BY p.published_at DESC
"""

POST_BY_SLUG_SQL = """
SELECT
    p.*,
    c.name AS category_name, c.slug AS category_slug,
    u.display_name AS author_name
FROM posts p
LEFT JOIN categories c ON p.category_id = c.id
LEFT JOIN users u ON p.author_id = u.id
WHERE p.slug = :slug AND p.status = 'published'
"""

POST_TAGS_SQL = """
SELECT t.name, t.slug, t.source, pt.confidence
FROM tags t
JOIN post_tags pt ON t.id = pt.tag_id
WHERE pt.post_id = :post_id
ORDER BY t.name ASC
"""

INSERT_POST_SQL = """
INSERT INTO posts (
    title, slug, content, excerpt, category_id, author_id,
    status, featured, reading_time_minutes, published_at
)
VALUES (
    :title, :slug, :content, :excerpt, :category_id,
    COALESCE(
        (SELECT id FROM users WHERE cognito_id = :author_sub),
        (SELECT id FROM users WHERE role = 'admin' ORDER BY id LIMIT 1)
    ),
    :status, :featured, :reading_time_minutes, :published_at
)
RETURNING *
"""

UPSERT_TAG_SQL = """
INSERT INTO tags (name, slug, source)
VALUES (:name, :slug, 'manual')
ON CONFLICT (slug) DO UPDATE SET name = EXCLUDED.name
RETURNING id
"""

LINK_TAG_SQL = "INSERT INTO post_tags (post_id, tag_id) VALUES (:post_id, :tag_id) ON CONFLICT DO NOTHING"

INCREMENT_VIEWS_SQL = "UPDATE posts SET view_count = view_count + 1 WHERE id = :id"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_post_filters(
    search: str | None,
    category: str | None,
    tag: str | None,
    status_value: str | None = "published",
) -> list[Filter]:
    """Translate optional query parameters into filters. Blank values impose no constraint."""
    filters: list[Filter] = []
    if status_value:
        filters.append(StatusFilter(status_value))
    if search and search.strip():
        filters.append(SearchFilter(search.strip()))
    if category and category.strip():
        filters.append(CategoryFilter(category.strip()))
    if tag and tag.strip():
        filters.append(TagFilter(tag.strip()))
    return filters


@router.get("")
async def list_posts(
    search: str | None = Query(None, description="Case-insensitive match on title or excerpt"),
    category: str | None = Query(None, description="Category slug"),
    tag: str | None = Query(None, description="Tag slug"),
) -> list[dict]:
    """
    List published posts, newest first.

    Each post carries its category, author name, and an array of tags
    (empty when the post has none). Filters combine with AND.
    """
    where, params = build_where(build_post_filters(search, category, tag))
    try:
        result = await db.query(LIST_POSTS_SQL.format(where=where), params)
    except DatabaseUnavailable:
        logger.error("Error fetching posts", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch posts",
        )
    return result.rows


@router.get("/{slug}")
async def get_post(slug: str) -> dict:
    """
    Get a single published post by URL slug, with its tags.

    The view counter is incremented in the background; the response may
    still show the previous count.
    """
    try:
        post = (await db.query(POST_BY_SLUG_SQL, {"slug": slug})).first()
        if post is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        tags = await db.query(POST_TAGS_SQL, {"post_id": post["id"]})
    except DatabaseUnavailable:
        logger.error("Error fetching post", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch post",
        )

    fire_and_forget(
        db.query(INCREMENT_VIEWS_SQL, {"id": post["id"]}),
        f"view count for post {post['id']}",
    )

    return {**post, "tags": tags.rows}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: schemas.PostCreate | None = None,
    user: schemas.TokenPayload = Depends(require_admin),
) -> dict:
    """
    Create a post (admin only).

    The slug is derived from the title, reading time from the word count.
    Tag names are upserted by slug and linked to the new post.
    """
    payload = payload or schemas.PostCreate()
    if not payload.title or not payload.content or not payload.category_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title, content, and category_id are required",
        )

    slug = slugify(payload.title)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title must contain at least one letter or digit",
        )

    post_status = payload.status or "draft"
    params = {
        "title": payload.title,
        "slug": slug,
        "content": payload.content,
        "excerpt": payload.excerpt or None,
        "category_id": payload.category_id,
        "author_sub": user.sub,
        "status": post_status,
        "featured": bool(payload.featured),
        "reading_time_minutes": reading_time_minutes(payload.content),
        "published_at": _utcnow() if post_status == "published" else None,
    }

    try:
        post = (await db.query(INSERT_POST_SQL, params)).first()

        # Not transactional: a failure here leaves the post with a subset of its tags
        for tag_name in payload.tags:
            tag_slug = slugify(tag_name)
            if not tag_slug:
                continue
            tag = (await db.query(UPSERT_TAG_SQL, {"name": tag_name.strip(), "slug": tag_slug})).first()
            await db.query(LINK_TAG_SQL, {"post_id": post["id"], "tag_id": tag["id"]})
    except DatabaseUnavailable:
        logger.error("Error creating post", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create post",
        )

    logger.info(f"Created post {post['id']} ({post_status}) by {user.sub}")
    return post


@router.put("/{id}")
async def update_post(
    id: int,
    payload: schemas.PostUpdate | None = None,
    user: schemas.TokenPayload = Depends(require_admin),
) -> dict:
    """
    Partially update a post (admin only).

    Only the fields present in the body are written. The first transition to
    "published" stamps published_at; later ones keep the original value.
    """
    payload = payload or schemas.PostUpdate()
    fields = payload.model_dump(exclude_unset=True)

    for name in ("title", "content", "status", "featured"):
        if name in fields and fields[name] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name} cannot be null",
            )

    assignments: list[Assign | AssignExpr] = []
    if "title" in fields:
        assignments.append(Assign("title", fields["title"]))
    if "content" in fields:
        assignments.append(Assign("content", fields["content"]))
        if fields["content"] is not None:
            assignments.append(Assign("reading_time_minutes", reading_time_minutes(fields["content"])))
    if "excerpt" in fields:
        assignments.append(Assign("excerpt", fields["excerpt"]))
    if "category_id" in fields:
        assignments.append(Assign("category_id", fields["category_id"]))
    if "status" in fields:
        assignments.append(Assign("status", fields["status"]))
        if fields["status"] == "published":
            assignments.append(
                AssignExpr(
                    "published_at",
                    "COALESCE(published_at, :published_at)",
                    {"published_at": _utcnow()},
                )
            )
    if "featured" in fields:
        assignments.append(Assign("featured", fields["featured"]))

    if not assignments:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    assignments.append(AssignExpr("updated_at", "NOW()"))
    set_clause, params = build_set_clause(assignments)
    params["id"] = id

    try:
        result = await db.query(f"UPDATE posts SET {set_clause} WHERE id = :id RETURNING *", params)
    except DatabaseUnavailable:
        logger.error("Error updating post", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update post",
        )

    post = result.first()
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    logger.info(f"Updated post {id} ({', '.join(fields)}) by {user.sub}")
    return post


@router.delete("/{id}")
async def delete_post(
    id: int,
    user: schemas.TokenPayload = Depends(require_admin),
) -> dict:
    """
    Delete a post (admin only).

    Comments and tag links go with it (ON DELETE CASCADE); tags and
    categories stay.
    """
    try:
        result = await db.query("DELETE FROM posts WHERE id = :id RETURNING id", {"id": id})
    except DatabaseUnavailable:
        logger.error("Error deleting post", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete post",
        )

    if not result.rows:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

    logger.info(f"Deleted post {id} by {user.sub}")
    return {"message": "Post deleted"}
