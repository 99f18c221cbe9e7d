"""Tests for user profile endpoints and services."""

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Post, User
from services import UsernameTakenError, derive_username, get_or_create_user
from services import users as users_service


async def _sync_user(
    async_client: AsyncClient,
    auth_headers,
    external_id: str,
    **overrides,
) -> dict:
    payload = {
        "email": f"{external_id}@example.com",
        "name": external_id.title(),
    }
    payload.update(overrides)
    response = await async_client.post(
        "/api/v1/users/sync",
        json=payload,
        headers=auth_headers(external_id),
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    return response.json()


def test_derive_username_strips_non_alphanumeric() -> None:
    assert derive_username("Jane.Doe+feed@Example.com") == "janedoefeed"
    assert derive_username("___@example.com") == "user"


@pytest.mark.asyncio
async def test_sync_creates_user_with_derived_username(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    created = await _sync_user(
        async_client,
        auth_headers,
        "idp_alice",
        email="Alice.Smith@example.com",
        name="Alice",
    )

    assert created["external_id"] == "idp_alice"
    assert created["username"] == "alicesmith"
    assert created["name"] == "Alice"
    assert created["avatar_url"] is None
    assert created["bio"] is None

    me = await async_client.get("/api/v1/users/me", headers=auth_headers("idp_alice"))
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["id"] == created["id"]


@pytest.mark.asyncio
async def test_sync_is_first_write_wins(
    async_client: AsyncClient,
    auth_headers,
    db_session: AsyncSession,
) -> None:
    first = await _sync_user(async_client, auth_headers, "idp_bob", name="Bob")
    second = await _sync_user(
        async_client,
        auth_headers,
        "idp_bob",
        name="Robert",
        email="robert@example.com",
        username="robert",
    )

    assert second == first
    result = await db_session.execute(select(User))
    users = result.scalars().all()
    assert len(users) == 1
    assert users[0].name == "Bob"


@pytest.mark.asyncio
async def test_get_or_create_user_returns_existing_record(db_session: AsyncSession) -> None:
    first = await get_or_create_user(
        db_session,
        external_id="idp_same",
        email="same@example.com",
        name="First",
    )
    second = await get_or_create_user(
        db_session,
        external_id="idp_same",
        email="other@example.com",
        name="Second",
    )

    assert second.id == first.id
    assert second.name == "First"
    assert second.email == "same@example.com"


@pytest.mark.asyncio
async def test_get_or_create_user_rejects_taken_username(db_session: AsyncSession) -> None:
    await get_or_create_user(
        db_session,
        external_id="idp_owner",
        email="taken@example.com",
        name="Owner",
    )

    with pytest.raises(UsernameTakenError):
        await get_or_create_user(
            db_session,
            external_id="idp_other",
            email="taken@another.example.com",
            name="Other",
        )


@pytest.mark.asyncio
async def test_sync_returns_conflict_for_taken_username(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    await _sync_user(async_client, auth_headers, "idp_first", username="shared")

    response = await async_client.post(
        "/api/v1/users/sync",
        json={"email": "second@example.com", "name": "Second", "username": "shared"},
        headers=auth_headers("idp_second"),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"] == "Username is already taken"


@pytest.mark.asyncio
async def test_sync_rejects_invalid_username(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    response = await async_client.post(
        "/api/v1/users/sync",
        json={"email": "x@example.com", "name": "X", "username": "Not_Valid"},
        headers=auth_headers("idp_invalid"),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


@pytest.mark.asyncio
async def test_me_returns_not_found_before_sync(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    response = await async_client.get("/api/v1/users/me", headers=auth_headers("idp_new"))
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "User not found"


@pytest.mark.asyncio
async def test_update_profile_changes_only_supplied_fields(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    created = await _sync_user(
        async_client,
        auth_headers,
        "idp_carol",
        avatar_url="https://cdn.example.com/carol.png",
    )

    response = await async_client.patch(
        "/api/v1/users/me",
        json={"bio": "Coffee and film", "username": "carolfilm"},
        headers=auth_headers("idp_carol"),
    )
    assert response.status_code == status.HTTP_200_OK
    updated = response.json()
    assert updated["id"] == created["id"]
    assert updated["bio"] == "Coffee and film"
    assert updated["username"] == "carolfilm"
    assert updated["name"] == created["name"]
    assert updated["avatar_url"] == "https://cdn.example.com/carol.png"

    cleared = await async_client.patch(
        "/api/v1/users/me",
        json={"bio": None},
        headers=auth_headers("idp_carol"),
    )
    assert cleared.status_code == status.HTTP_200_OK
    assert cleared.json()["bio"] is None
    assert cleared.json()["username"] == "carolfilm"


@pytest.mark.asyncio
async def test_update_profile_rejects_taken_username(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    await _sync_user(async_client, auth_headers, "idp_dave", username="dave")
    await _sync_user(async_client, auth_headers, "idp_erin", username="erin")

    response = await async_client.patch(
        "/api/v1/users/me",
        json={"username": "dave"},
        headers=auth_headers("idp_erin"),
    )
    assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.asyncio
async def test_update_profile_rejects_blank_name(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    await _sync_user(async_client, auth_headers, "idp_frank")

    response = await async_client.patch(
        "/api/v1/users/me",
        json={"name": "   "},
        headers=auth_headers("idp_frank"),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_CONTENT


@pytest.mark.asyncio
async def test_profile_edit_does_not_rewrite_post_author_snapshot(
    async_client: AsyncClient,
    auth_headers,
    db_session: AsyncSession,
) -> None:
    await _sync_user(
        async_client,
        auth_headers,
        "idp_gina",
        name="Gina",
        avatar_url="https://cdn.example.com/gina-old.png",
    )
    create_response = await async_client.post(
        "/api/v1/posts",
        json={"caption": "before rename"},
        headers=auth_headers("idp_gina"),
    )
    assert create_response.status_code == status.HTTP_201_CREATED

    await async_client.patch(
        "/api/v1/users/me",
        json={"name": "Gina Renamed", "avatar_url": "https://cdn.example.com/gina-new.png"},
        headers=auth_headers("idp_gina"),
    )

    result = await db_session.execute(select(Post))
    post = result.scalar_one()
    assert post.author_name == "Gina"
    assert post.author_avatar == "https://cdn.example.com/gina-old.png"


@pytest.mark.asyncio
async def test_get_user_by_id(
    async_client: AsyncClient,
    auth_headers,
) -> None:
    viewer = await _sync_user(async_client, auth_headers, "idp_viewer")
    target = await _sync_user(async_client, auth_headers, "idp_target")

    response = await async_client.get(
        f"/api/v1/users/{target['id']}",
        headers=auth_headers("idp_viewer"),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == target["username"]
    assert viewer["id"] != target["id"]

    missing = await async_client.get(
        "/api/v1/users/does-not-exist",
        headers=auth_headers("idp_viewer"),
    )
    assert missing.status_code == status.HTTP_404_NOT_FOUND


async def _commit_user(session_maker, *, external_id: str, name: str, username: str) -> str:
    async with session_maker() as other_session:
        user = User(
            external_id=external_id,
            email=f"{external_id}@example.com",
            name=name,
            username=username,
        )
        other_session.add(user)
        await other_session.commit()
        return user.id


@pytest.mark.asyncio
async def test_get_or_create_user_returns_concurrent_winner(
    db_session: AsyncSession,
    session_maker,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    username_owner_id = users_service._username_owner_id
    winner_ids: list[str] = []

    async def _racing_owner_lookup(session: AsyncSession, username: str) -> str | None:
        owner_id = await username_owner_id(session, username)
        # Another sign-in for the same identity commits right after the checks.
        winner_ids.append(
            await _commit_user(
                session_maker,
                external_id="idp_racer",
                name="Winner",
                username="racer",
            )
        )
        return owner_id

    monkeypatch.setattr(users_service, "_username_owner_id", _racing_owner_lookup)

    user = await get_or_create_user(
        db_session,
        external_id="idp_racer",
        email="racer@example.com",
        name="Loser",
    )

    assert user.id == winner_ids[0]
    assert user.name == "Winner"
    result = await db_session.execute(select(User))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_get_or_create_user_reports_username_lost_to_race(
    db_session: AsyncSession,
    session_maker,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    username_owner_id = users_service._username_owner_id

    async def _racing_owner_lookup(session: AsyncSession, username: str) -> str | None:
        owner_id = await username_owner_id(session, username)
        await _commit_user(
            session_maker,
            external_id="idp_someone_else",
            name="Someone",
            username=username,
        )
        return owner_id

    monkeypatch.setattr(users_service, "_username_owner_id", _racing_owner_lookup)

    with pytest.raises(UsernameTakenError):
        await get_or_create_user(
            db_session,
            external_id="idp_latecomer",
            email="shared@example.com",
            name="Latecomer",
        )

    result = await db_session.execute(select(User.external_id))
    assert result.scalars().all() == ["idp_someone_else"]
