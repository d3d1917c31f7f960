"""Category endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from .. import db, schemas
from ..auth import require_admin
from ..db import DatabaseUnavailable
from ..utils.text import slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["Categories"])


LIST_CATEGORIES_SQL = """
SELECT
    c.id, c.name, c.slug, c.description,
    COUNT(p.id)::int AS post_count
FROM categories c
LEFT JOIN posts p ON p.category_id = c.id AND p.status = 'published'
GROUP BY c.id
ORDER BY c.name ASC
"""

INSERT_CATEGORY_SQL = """
INSERT INTO categories (name, slug, description)
VALUES (:name, :slug, :description)
RETURNING *
"""


@router.get("")
async def list_categories() -> list[dict]:
    """List categories alphabetically with their count of published posts."""
    try:
        result = await db.query(LIST_CATEGORIES_SQL)
    except DatabaseUnavailable:
        logger.error("Error fetching categories", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch categories",
        )
    return result.rows


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: schemas.CategoryCreate | None = None,
    user: schemas.TokenPayload = Depends(require_admin),
) -> dict:
    """Create a category (admin only). The slug is derived from the name."""
    payload = payload or schemas.CategoryCreate()
    if not payload.name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    slug = slugify(payload.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name must contain at least one letter or digit",
        )

    try:
        result = await db.query(
            INSERT_CATEGORY_SQL,
            {
                "name": payload.name,
                "slug": slug,
                "description": payload.description or None,
            },
        )
    except DatabaseUnavailable:
        logger.error("Error creating category", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create category",
        )
    return result.first()
