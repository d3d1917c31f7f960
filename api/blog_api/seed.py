from __future__ import annotations

import asyncio
import logging

from . import db, settings

logger = logging.getLogger(__name__)

# (name, slug, description)
DEFAULT_CATEGORIES: tuple[tuple[str, str, str], ...] = (
    ("AWS & Cloud", "aws-cloud", "AWS Certifications, Cloud Architecture and Best Practices"),
    ("DevOps & CI/CD", "devops", "CI/CD, Docker, Kubernetes and Infrastructure as Code"),
    ("Homelab & Self-Hosting", "homelab", "NAS Setup, Self-Hosted Services and Homelab Projects"),
    ("Networking & Security", "networking", "VPN, Reverse Proxy, DNS and Security Best Practices"),
    ("Tools & Productivity", "tools", "Development Tools, Terminal Setup and Workflow Automation"),
    ("Certifications", "certifications", "Certifications, Study Plans and Exam Tips"),
)


async def ensure_seed_data() -> None:
    """
    Insert the blog's author and default categories into empty tables.

    Posts created through the API are attributed to the seeded user unless
    the caller's Cognito subject matches another row. Each table is checked
    on its own, so a database with users but no categories still gets them.
    """
    await _seed_admin_user()
    await _seed_categories()


async def _seed_admin_user() -> None:
    existing = await db.query("SELECT id FROM users LIMIT 1")
    if existing.rows:
        logger.info("ensure_seed_data: Users present, nothing to seed.")
        return

    await db.query(
        """
        INSERT INTO users (cognito_id, email, display_name, role)
        VALUES (:cognito_id, :email, :display_name, 'admin')
        """,
        {
            "cognito_id": "seed-admin-placeholder",
            "email": settings.SEED_ADMIN_EMAIL,
            "display_name": settings.SEED_ADMIN_NAME,
        },
    )
    logger.info(f"ensure_seed_data: Created admin user {settings.SEED_ADMIN_EMAIL}")


async def _seed_categories() -> None:
    existing = await db.query("SELECT id FROM categories LIMIT 1")
    if existing.rows:
        logger.info("ensure_seed_data: Categories present, nothing to seed.")
        return

    for name, slug, description in DEFAULT_CATEGORIES:
        await db.query(
            """
            INSERT INTO categories (name, slug, description)
            VALUES (:name, :slug, :description)
            ON CONFLICT (slug) DO NOTHING
            """,
            {"name": name, "slug": slug, "description": description},
        )
    logger.info(f"ensure_seed_data: Created {len(DEFAULT_CATEGORIES)} default categories")


async def _main() -> None:
    try:
        await ensure_seed_data()
    finally:
        await db.dispose_engine()


if __name__ == "__main__":
    logging.basicConfig(level="INFO")
    asyncio.run(_main())
