async def test_list_users_requires_admin(client, teacher_headers):
    response = await client.get("/api/v1/users", headers=teacher_headers)
    assert response.status_code == 403


async def test_list_users_filters(client, admin_headers, teacher_user, student_user, make_user):
    await make_user("Student", email="pending.kid@riverside.org", is_approved=False)

    response = await client.get("/api/v1/users", headers=admin_headers, params={"role": "Student"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {item["email"] for item in body["items"]} == {
        "student@riverside.org", "pending.kid@riverside.org"
    }

    pending = await client.get("/api/v1/users", headers=admin_headers, params={"is_approved": False})
    assert [item["email"] for item in pending.json()["items"]] == ["pending.kid@riverside.org"]

    search = await client.get("/api/v1/users", headers=admin_headers, params={"search": "TEACHER@"})
    assert search.json()["total"] == 1


async def test_list_users_pagination(client, admin_headers, make_user):
    for _ in range(3):
        await make_user("Student")
    response = await client.get("/api/v1/users", headers=admin_headers, params={"page": 2, "size": 2})
    body = response.json()
    assert body["total"] == 4
    assert body["page"] == 2
    assert len(body["items"]) == 2


async def test_create_user_with_profiles(client, admin_headers, parent_user):
    response = await client.post("/api/v1/users", headers=admin_headers, json={
        "email": "Grace@Riverside.org",
        "password": "password123",
        "first_name": "Grace",
        "last_name": "Hopper",
        "roles": ["Student"],
        "student_profile": {"grade": "10", "parent_id": parent_user.parent_profile.id}
    })
    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "grace@riverside.org"
    assert body["is_approved"] is True
    assert body["student_profile"]["grade"] == "10"
    assert body["student_profile"]["parent_id"] == parent_user.parent_profile.id


async def test_create_user_unknown_role(client, admin_headers):
    response = await client.post("/api/v1/users", headers=admin_headers, json={
        "email": "x@riverside.org",
        "password": "password123",
        "first_name": "X",
        "last_name": "Y",
        "roles": ["Wizard"]
    })
    assert response.status_code == 400


async def test_create_user_duplicate_email(client, admin_headers, teacher_user):
    response = await client.post("/api/v1/users", headers=admin_headers, json={
        "email": "teacher@riverside.org",
        "password": "password123",
        "first_name": "Dup",
        "last_name": "Licate",
        "roles": ["Teacher"]
    })
    assert response.status_code == 409


async def test_update_user_roles_adds_profile(client, admin_headers, teacher_user):
    response = await client.patch(f"/api/v1/users/{teacher_user.id}", headers=admin_headers, json={
        "roles": ["Teacher", "Parent"],
        "phone": "555-0100"
    })
    assert response.status_code == 200
    body = response.json()
    assert sorted(body["role_names"]) == ["Parent", "Teacher"]
    assert body["parent_profile"] is not None
    assert body["phone"] == "555-0100"


async def test_users_are_scoped_to_organization(client, admin_headers, make_user, other_organization):
    organization, roles = other_organization
    outsider = await make_user("Teacher", organization_id=organization.id, role_map=roles)
    response = await client.get(f"/api/v1/users/{outsider.id}", headers=admin_headers)
    assert response.status_code == 404


async def test_approve_users_in_bulk(client, admin_headers, make_user):
    first = await make_user("Student", is_approved=False)
    second = await make_user("Parent", is_approved=False)
    response = await client.post("/api/v1/users/approve", headers=admin_headers, json={
        "user_ids": [first.id, second.id]
    })
    assert response.status_code == 200
    assert response.json() == {"approved": 2}

    again = await client.post(f"/api/v1/users/{first.id}/approve", headers=admin_headers)
    assert again.json() == {"approved": 0}


async def test_delete_user(client, admin_headers, student_user):
    response = await client.delete(f"/api/v1/users/{student_user.id}", headers=admin_headers)
    assert response.status_code == 204
    missing = await client.get(f"/api/v1/users/{student_user.id}", headers=admin_headers)
    assert missing.status_code == 404


async def test_cannot_delete_self(client, admin_user, admin_headers):
    response = await client.delete(f"/api/v1/users/{admin_user.id}", headers=admin_headers)
    assert response.status_code == 400


async def test_reset_password_generates_temporary(client, admin_headers, student_user):
    response = await client.post(
        f"/api/v1/users/{student_user.id}/reset-password", headers=admin_headers, json={}
    )
    assert response.status_code == 200
    temporary = response.json()["temporary_password"]
    assert temporary and len(temporary) == 12

    login = await client.post(
        "/api/v1/auth/login", json={"email": "student@riverside.org", "password": temporary}
    )
    assert login.status_code == 200


async def test_reset_password_with_explicit_value(client, admin_headers, student_user):
    response = await client.post(
        f"/api/v1/users/{student_user.id}/reset-password",
        headers=admin_headers,
        json={"new_password": "chosen-password"}
    )
    assert response.status_code == 200
    assert response.json()["temporary_password"] is None


async def test_roles_crud(client, admin_headers, teacher_user, roles):
    listing = await client.get("/api/v1/users/roles", headers=admin_headers)
    assert listing.status_code == 200
    counts = {role["name"]: role["user_count"] for role in listing.json()}
    assert counts["Teacher"] == 1
    assert counts["Admin"] == 1

    created = await client.post("/api/v1/users/roles", headers=admin_headers, json={
        "name": "Librarian",
        "permissions": ["knowledge:publish", "knowledge:create"]
    })
    assert created.status_code == 201
    role = created.json()
    assert role["is_system"] is False
    assert role["permissions"] == ["knowledge:create", "knowledge:publish"]

    duplicate = await client.post("/api/v1/users/roles", headers=admin_headers, json={"name": "Librarian"})
    assert duplicate.status_code == 409

    builtin = await client.delete(f"/api/v1/users/roles/{roles['Teacher'].id}", headers=admin_headers)
    assert builtin.status_code == 400

    deleted = await client.delete(f"/api/v1/users/roles/{role['id']}", headers=admin_headers)
    assert deleted.status_code == 204


async def test_parent_summary(client, admin_headers, parent_user):
    response = await client.get(
        f"/api/v1/users/parents/{parent_user.parent_profile.id}", headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "parent@riverside.org"
