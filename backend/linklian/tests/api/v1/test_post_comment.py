# backend/linklian/tests/api/v1/test_post_comment.py

from typing import Any, Dict

from httpx import AsyncClient


def as_user(user) -> Dict[str, str]:
    return {"x-user-id": str(user.user_sys_id)}


async def test_comment_requires_user_header(client: AsyncClient, seed_data: Dict[str, Any]):
    response = await client.post(
        "/api/v1/post-comment",
        json={"post_id": seed_data["post"].post_id, "comment_text": "hi"},
    )
    assert response.status_code == 401


async def test_non_numeric_user_header_is_unauthorized(client, seed_data):
    response = await client.post(
        "/api/v1/post-comment",
        json={"post_id": seed_data["post"].post_id, "comment_text": "hi"},
        headers={"x-user-id": "abc"},
    )
    assert response.status_code == 401


async def test_comment_lifecycle(client, seed_data):
    post_id = seed_data["post"].post_id
    student = seed_data["student_1001"]

    created = await client.post(
        "/api/v1/post-comment",
        json={"post_id": post_id, "comment_text": "question"},
        headers=as_user(student),
    )
    assert created.status_code == 201
    root_id = created.json()["data"]["comment_id"]

    reply = await client.post(
        "/api/v1/post-comment",
        json={"post_id": post_id, "comment_text": "answer", "parent_id": root_id},
        headers=as_user(seed_data["teacher_t01"]),
    )
    assert reply.status_code == 201

    tree = await client.get("/api/v1/post-comment", params={"post_id": post_id})
    assert tree.status_code == 200
    body = tree.json()
    assert body["total"] == 1
    assert body["hasMore"] is False
    assert body["data"][0]["children"][0]["comment_text"] == "answer"

    edited = await client.put(
        "/api/v1/post-comment",
        json={"comment_id": root_id, "comment_text": "better question"},
        headers=as_user(student),
    )
    assert edited.status_code == 200
    assert edited.json()["data"]["comment_text"] == "better question"

    forbidden = await client.request(
        "DELETE",
        "/api/v1/post-comment",
        json={"comment_id": root_id},
        headers=as_user(seed_data["student_1002"]),
    )
    assert forbidden.status_code == 403

    deleted = await client.request(
        "DELETE",
        "/api/v1/post-comment",
        json={"comment_id": root_id},
        headers=as_user(student),
    )
    assert deleted.status_code == 200
    assert deleted.json()["data"]["deleted_count"] == 2

    tree = await client.get("/api/v1/post-comment", params={"post_id": post_id})
    assert tree.json()["data"] == []


async def test_listing_without_post_id_is_a_bad_request(client):
    response = await client.get("/api/v1/post-comment")
    assert response.status_code == 400


async def test_root_endpoint(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "active"
