"""Project chat API tests"""
from tests.conftest import auth_headers

API = "/api/v1/chat"


def _send(client, project_id, user_id, body, **extra):
    return client.post(
        f"{API}/projects/{project_id}/messages",
        json={"body": body, **extra},
        headers=auth_headers(user_id)
    )


def test_send_and_list(client, users, project):
    response = _send(client, project.project_id, users["lead"].user_id, "Hello team")
    assert response.status_code == 201
    message = response.json()
    assert message["sender_id"] == users["lead"].user_id
    assert message["priority"] == "NORMAL"

    listing = client.get(
        f"{API}/projects/{project.project_id}/messages",
        headers=auth_headers(users["designer"].user_id)
    ).json()
    assert [m["body"] for m in listing["items"]] == ["Hello team"]
    assert listing["page"] == 1


def test_restricted_message_is_hidden_from_other_roles(client, users, project):
    _send(client, project.project_id, users["lead"].user_id, "Leads and managers",
          visible_to_roles=["TEAM_LEAD", "MANAGER"], priority="HIGH")

    designer_view = client.get(
        f"{API}/projects/{project.project_id}/messages",
        headers=auth_headers(users["designer"].user_id)
    ).json()
    manager_view = client.get(
        f"{API}/projects/{project.project_id}/messages",
        headers=auth_headers(users["manager"].user_id)
    ).json()

    assert designer_view["items"] == []
    assert manager_view["items"][0]["priority"] == "HIGH"


def test_non_member_is_forbidden(client, users, project):
    response = _send(client, project.project_id, users["dev"].user_id, "Let me in")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_empty_body(client, users, project):
    response = _send(client, project.project_id, users["lead"].user_id, "   ")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_edit_and_delete(client, users, project):
    message = _send(client, project.project_id, users["lead"].user_id, "Draft").json()
    url = f"{API}/messages/{message['message_id']}"

    foreign = client.patch(url, json={"body": "Hijack"}, headers=auth_headers(users["manager"].user_id))
    assert foreign.status_code == 403

    edited = client.patch(url, json={"body": "Final"}, headers=auth_headers(users["lead"].user_id))
    assert edited.status_code == 200
    assert edited.json()["body"] == "Final"
    assert edited.json()["edited_at"] is not None

    assert client.delete(url, headers=auth_headers(users["lead"].user_id)).status_code == 204
    gone = client.delete(url, headers=auth_headers(users["lead"].user_id))
    assert gone.status_code == 404
    assert gone.json()["error"]["code"] == "CHAT_MESSAGE_NOT_FOUND"
