"""Comment endpoints: public listing and submission, admin moderation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import db, schemas
from ..auth import require_admin
from ..db import DatabaseUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Comments"])


def invalid_status_detail() -> str:
    return f"Status must be one of: {', '.join(schemas.COMMENT_STATUSES)}"


@router.get("/posts/{post_id}/comments")
async def list_comments(post_id: int) -> list[dict]:
    """List approved comments for a post, oldest first."""
    try:
        result = await db.query(
            """
            SELECT id, author_name, content, created_at
            FROM comments
            WHERE post_id = :post_id AND status = 'approved'
            ORDER BY created_at ASC
            """,
            {"post_id": post_id},
        )
    except DatabaseUnavailable:
        logger.error("Error fetching comments", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch comments",
        )
    return result.rows


@router.post("/posts/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(post_id: int, payload: schemas.CommentCreate | None = None) -> dict:
    """
    Submit a comment (no login required).

    New comments always start as "pending" until moderated. The author's
    email is stored but never echoed back.
    """
    payload = payload or schemas.CommentCreate()
    if not payload.author_name or not payload.content:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="author_name and content are required",
        )

    try:
        post = await db.query("SELECT id FROM posts WHERE id = :id", {"id": post_id})
        if not post.rows:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")

        result = await db.query(
            """
            INSERT INTO comments (post_id, author_name, author_email, content, status)
            VALUES (:post_id, :author_name, :author_email, :content, 'pending')
            RETURNING id, author_name, content, status, created_at
            """,
            {
                "post_id": post_id,
                "author_name": payload.author_name,
                "author_email": payload.author_email or None,
                "content": payload.content,
            },
        )
    except DatabaseUnavailable:
        logger.error("Error creating comment", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create comment",
        )
    return result.first()


@router.put("/comments/{id}/status")
async def update_comment_status(
    id: int,
    payload: schemas.CommentStatusUpdate | None = None,
    user: schemas.TokenPayload = Depends(require_admin),
) -> dict:
    """Moderate a comment (admin only): approve, flag, delete, or reset to pending."""
    payload = payload or schemas.CommentStatusUpdate()
    if payload.status not in schemas.COMMENT_STATUSES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=invalid_status_detail())

    try:
        result = await db.query(
            "UPDATE comments SET status = :status WHERE id = :id RETURNING *",
            {"status": payload.status, "id": id},
        )
    except DatabaseUnavailable:
        logger.error("Error updating comment", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update comment status",
        )

    comment = result.first()
    if comment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")

    logger.info(f"Comment {id} set to {payload.status} by {user.sub}")
    return comment
