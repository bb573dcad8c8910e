from portal.core.config import settings


def _contact(**overrides):
    payload = {
        "organization_slug": "riverside",
        "name": "Jane Doe",
        "email": "jane.doe@gmail.com",
        "subject": "Enrollment",
        "message": "When does the next term start?"
    }
    payload.update(overrides)
    return payload


async def test_public_contact_submission(client, admin_headers):
    response = await client.post("/api/v1/public/contact", json=_contact())
    assert response.status_code == 201
    assert response.json()["status"] == "new"

    inbox = await client.get("/api/v1/contacts", headers=admin_headers)
    body = inbox.json()
    assert len(body["items"]) == 1
    assert body["counts"]["new"] == 1
    assert body["counts"]["archived"] == 0


async def test_contact_unknown_organization(client, organization):
    response = await client.post("/api/v1/public/contact", json=_contact(organization_slug="nope"))
    assert response.status_code == 404


async def test_contact_form_is_rate_limited(client, organization):
    for _ in range(settings.CONTACT_RATE_LIMIT):
        response = await client.post("/api/v1/public/contact", json=_contact())
        assert response.status_code == 201
    response = await client.post("/api/v1/public/contact", json=_contact())
    assert response.status_code == 429


async def test_contact_status_and_delete(client, admin_headers):
    created = await client.post("/api/v1/public/contact", json=_contact())
    submission_id = created.json()["id"]

    updated = await client.patch(
        f"/api/v1/contacts/{submission_id}", headers=admin_headers, json={"status": "replied"}
    )
    assert updated.json()["status"] == "replied"

    filtered = await client.get("/api/v1/contacts", headers=admin_headers, params={"status": "new"})
    assert filtered.json()["items"] == []
    assert filtered.json()["counts"]["replied"] == 1

    deleted = await client.delete(f"/api/v1/contacts/{submission_id}", headers=admin_headers)
    assert deleted.status_code == 204


async def test_pages_and_publishing(client, admin_headers):
    draft = await client.post("/api/v1/pages", headers=admin_headers, json={
        "title": "About us",
        "slug": "about",
        "content": "# About Riverside"
    })
    assert draft.status_code == 201
    page = draft.json()
    assert page["is_draft"] is True
    assert page["published_at"] is None

    hidden = await client.get("/api/v1/public/pages/about", params={"organization_slug": "riverside"})
    assert hidden.status_code == 404

    published = await client.patch(
        f"/api/v1/pages/{page['id']}", headers=admin_headers, json={"is_draft": False}
    )
    assert published.json()["published_at"] is not None

    public = await client.get("/api/v1/public/pages/about", params={"organization_slug": "riverside"})
    assert public.status_code == 200
    assert public.json()["content"] == "# About Riverside"

    listing = await client.get("/api/v1/pages", headers=admin_headers)
    assert listing.json()["stats"] == {"total": 1, "published": 1, "drafts": 0}


async def test_page_slug_conflict(client, admin_headers):
    payload = {"title": "Fees", "slug": "fees", "content": "Fee schedule"}
    await client.post("/api/v1/pages", headers=admin_headers, json=payload)
    duplicate = await client.post("/api/v1/pages", headers=admin_headers, json=payload)
    assert duplicate.status_code == 409


async def test_page_slug_format(client, admin_headers):
    response = await client.post("/api/v1/pages", headers=admin_headers, json={
        "title": "Bad", "slug": "Bad Slug!", "content": "x"
    })
    assert response.status_code == 422


async def test_testimonials(client, admin_headers):
    await client.post("/api/v1/testimonials", headers=admin_headers, json={
        "author_name": "Parent A", "content": "Wonderful teachers", "is_approved": True, "display_order": 2
    })
    await client.post("/api/v1/testimonials", headers=admin_headers, json={
        "author_name": "Parent B", "content": "Great value", "is_approved": True, "display_order": 1
    })
    pending = await client.post("/api/v1/testimonials", headers=admin_headers, json={
        "author_name": "Parent C", "content": "Pending review"
    })

    public = await client.get("/api/v1/public/testimonials", params={"organization_slug": "riverside"})
    assert [item["author_name"] for item in public.json()] == ["Parent B", "Parent A"]

    approved = await client.patch(
        f"/api/v1/testimonials/{pending.json()['id']}", headers=admin_headers, json={"is_approved": True}
    )
    assert approved.json()["is_approved"] is True

    deleted = await client.delete(f"/api/v1/testimonials/{pending.json()['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    assert len((await client.get("/api/v1/testimonials", headers=admin_headers)).json()) == 2


async def test_testimonial_rating_bounds(client, admin_headers):
    response = await client.post("/api/v1/testimonials", headers=admin_headers, json={
        "author_name": "X", "content": "Y", "rating": 6
    })
    assert response.status_code == 422
