"""Test category endpoints."""

from __future__ import annotations


def test_list_categories(client, fake_db):
    fake_db.push([
        {"id": 2, "name": "DevOps", "slug": "devops", "description": None, "post_count": 3},
        {"id": 1, "name": "Homelab", "slug": "homelab", "description": None, "post_count": 0},
    ])

    response = client.get("/api/categories")

    assert response.status_code == 200
    data = response.json()
    assert len(data) == 2
    assert data[0]["name"] == "DevOps"
    sql = fake_db.statements()[0]
    assert "p.status = 'published'" in sql
    assert "ORDER BY c.name ASC" in sql


def test_list_categories_database_error(client, fake_db):
    fake_db.fail()

    response = client.get("/api/categories")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch categories"}


def test_create_category_requires_name(client, fake_db):
    response = client.post("/api/categories", json={"description": "No name"})

    assert response.status_code == 400
    assert "required" in response.json()["error"]


def test_create_category_without_body(client, fake_db):
    response = client.post("/api/categories")

    assert response.status_code == 400
    assert response.json() == {"error": "Name is required"}
    assert fake_db.calls == []


def test_create_category_rejects_name_without_letters_or_digits(client, fake_db):
    response = client.post("/api/categories", json={"name": "???"})

    assert response.status_code == 400
    assert response.json() == {"error": "Name must contain at least one letter or digit"}
    assert fake_db.calls == []


def test_create_category(client, fake_db):
    fake_db.push([{"id": 1, "name": "Homelab", "slug": "homelab", "description": "Self-hosted stuff"}],
                 command="INSERT")

    response = client.post("/api/categories", json={"name": "Homelab", "description": "Self-hosted stuff"})

    assert response.status_code == 201
    assert response.json()["slug"] == "homelab"
    assert fake_db.calls[0][1] == {"name": "Homelab", "slug": "homelab", "description": "Self-hosted stuff"}


def test_create_category_slug_collapses_punctuation(client, fake_db):
    fake_db.push([{"id": 3}], command="INSERT")

    client.post("/api/categories", json={"name": "  Networking & Security!  "})

    params = fake_db.calls[0][1]
    assert params["slug"] == "networking-security"
    assert params["description"] is None
