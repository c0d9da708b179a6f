# tests/v1/test_messages.py
"""Tests for message-related endpoints."""

from fastapi import status

from freelance_chat.models import Message


def test_send_message(client, employer, freelancer, job, freelancer_headers, db_session) -> None:
    """Test sending a message about a job."""
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "Hello there", "jobId": job.id},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Message sent successfully"

    data = body["data"]
    assert data["senderId"] == freelancer.id
    assert data["receiverId"] == employer.id
    assert data["jobId"] == job.id
    assert data["content"] == "Hello there"
    assert data["read"] is False
    assert data["isSystem"] is False
    assert data["sender"]["name"] == freelancer.name
    assert data["receiver"]["id"] == employer.id

    stored = db_session.get(Message, data["id"])
    assert stored is not None
    assert stored.read is False


def test_send_message_without_job(client, employer, freelancer, freelancer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "No job attached"},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["jobId"] is None


def test_send_message_unknown_job_is_still_stored(client, employer, freelancer_headers) -> None:
    """A job that does not exist only produces a warning."""
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "hi", "jobId": "no-such-job"},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["jobId"] == "no-such-job"


def test_send_system_message(client, employer, freelancer, employer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={
            "receiverId": freelancer.id,
            "content": "Application status updated to: shortlisted",
            "isSystem": True,
        },
        headers=employer_headers,
    )
    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["data"]["isSystem"] is True


def test_send_message_missing_fields(client, employer, freelancer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Receiver and message content are required"


def test_send_message_blank_content(client, employer, freelancer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "   "},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_send_message_too_long(client, employer, freelancer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "x" * 5001},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "cannot exceed 5000" in response.json()["message"]


def test_send_message_to_nonexistent_user(client, freelancer, freelancer_headers) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": "missing-user", "content": "hello"},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Receiver not found"


def test_send_message_to_self(client, freelancer, freelancer_headers, db_session) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": freelancer.id, "content": "note to self"},
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "You cannot send a message to yourself"
    assert db_session.query(Message).count() == 0


def test_requests_without_token_are_rejected(client, employer) -> None:
    response = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "hello"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Not authorized, no token"


def test_requests_with_bad_token_are_rejected(client) -> None:
    response = client.get(
        "/api/v1/messages/unread/count",
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Not authorized, invalid token"


def test_get_conversation_is_ordered(
    client, employer, freelancer, outsider, freelancer_headers, make_message
) -> None:
    first = make_message(freelancer, employer, "first")
    second = make_message(employer, freelancer, "second")
    make_message(outsider, freelancer, "unrelated")
    third = make_message(freelancer, employer, "third")

    response = client.get(
        f"/api/v1/messages/conversation/{employer.id}",
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] == 3
    assert [message["id"] for message in body["messages"]] == [first.id, second.id, third.id]


def test_get_conversation_unknown_user(client, freelancer_headers) -> None:
    response = client.get(
        "/api/v1/messages/conversation/missing-user",
        headers=freelancer_headers,
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "User not found"


def test_get_job_messages(client, employer, freelancer, outsider, job, employer_headers, make_message) -> None:
    on_job = make_message(freelancer, employer, "about the job", job_id=job.id)
    make_message(freelancer, employer, "small talk")
    make_message(outsider, freelancer, "other job chatter", job_id=job.id)
    reply = make_message(employer, freelancer, "sounds good", job_id=job.id)

    response = client.get(f"/api/v1/messages/job/{job.id}", headers=employer_headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [message["id"] for message in body["messages"]] == [on_job.id, reply.id]


def test_get_job_messages_unknown_job(client, freelancer_headers) -> None:
    response = client.get("/api/v1/messages/job/no-such-job", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "count": 0, "messages": []}


def test_get_conversations(client, employer, freelancer, outsider, freelancer_headers, make_message) -> None:
    make_message(employer, freelancer, "one")
    make_message(employer, freelancer, "two")
    make_message(freelancer, outsider, "to outsider")
    latest = make_message(employer, freelancer, "three", read=True)

    response = client.get("/api/v1/messages/conversations", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["count"] == 2

    first = body["conversations"][0]
    assert first["partner"]["id"] == employer.id
    assert first["lastMessage"]["id"] == latest.id
    assert first["unreadCount"] == 2

    second = body["conversations"][1]
    assert second["partner"]["id"] == outsider.id
    assert second["unreadCount"] == 0


def test_unread_count(client, employer, freelancer, freelancer_headers, make_message) -> None:
    make_message(employer, freelancer, "unread")
    make_message(employer, freelancer, "read", read=True)
    make_message(freelancer, employer, "outgoing")

    response = client.get("/api/v1/messages/unread/count", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "unreadCount": 1}


def test_mark_as_read(client, employer, freelancer, freelancer_headers, make_message, db_session) -> None:
    message = make_message(employer, freelancer)

    response = client.put(f"/api/v1/messages/read/{message.id}", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Message marked as read"

    db_session.expire_all()
    assert db_session.get(Message, message.id).read is True

    # Marking again is harmless.
    again = client.put(f"/api/v1/messages/read/{message.id}", headers=freelancer_headers)
    assert again.status_code == status.HTTP_200_OK


def test_mark_as_read_by_sender_is_forbidden(client, employer, freelancer, employer_headers, make_message) -> None:
    message = make_message(employer, freelancer)

    response = client.put(f"/api/v1/messages/read/{message.id}", headers=employer_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "You can only mark messages sent to you as read"


def test_mark_as_read_missing_message(client, freelancer_headers) -> None:
    response = client.put("/api/v1/messages/read/missing", headers=freelancer_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["message"] == "Message not found"


def test_mark_all_as_read(client, employer, freelancer, freelancer_headers, make_message) -> None:
    make_message(employer, freelancer, "one")
    make_message(employer, freelancer, "two")
    make_message(employer, freelancer, "already", read=True)
    make_message(freelancer, employer, "mine")

    response = client.put(f"/api/v1/messages/read/user/{employer.id}", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["modifiedCount"] == 2
    assert body["message"] == "2 messages marked as read"

    count = client.get("/api/v1/messages/unread/count", headers=freelancer_headers)
    assert count.json()["unreadCount"] == 0

    again = client.put(f"/api/v1/messages/read/user/{employer.id}", headers=freelancer_headers)
    assert again.json()["modifiedCount"] == 0


def test_delete_message(client, employer, freelancer, freelancer_headers, make_message, db_session) -> None:
    message = make_message(freelancer, employer)

    response = client.delete(f"/api/v1/messages/{message.id}", headers=freelancer_headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Message deleted successfully"

    db_session.expire_all()
    assert db_session.get(Message, message.id) is None


def test_delete_message_by_receiver_is_forbidden(
    client, employer, freelancer, employer_headers, make_message, db_session
) -> None:
    message = make_message(freelancer, employer)

    response = client.delete(f"/api/v1/messages/{message.id}", headers=employer_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "You can only delete messages you sent"
    assert db_session.get(Message, message.id) is not None


def test_delete_missing_message(client, freelancer_headers) -> None:
    response = client.delete("/api/v1/messages/missing", headers=freelancer_headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_offline_receiver_sees_message_on_next_fetch(
    client, employer, freelancer, job, employer_headers, freelancer_headers
) -> None:
    """A message to an offline user is persisted and shows up in their history."""
    sent = client.post(
        "/api/v1/messages",
        json={"receiverId": employer.id, "content": "Are you there?", "jobId": job.id},
        headers=freelancer_headers,
    )
    assert sent.status_code == status.HTTP_201_CREATED
    message_id = sent.json()["data"]["id"]

    history = client.get(f"/api/v1/messages/job/{job.id}", headers=employer_headers).json()
    assert [message["id"] for message in history["messages"]] == [message_id]
    assert history["messages"][0]["read"] is False

    client.put(f"/api/v1/messages/read/{message_id}", headers=employer_headers)
    history = client.get(f"/api/v1/messages/job/{job.id}", headers=employer_headers).json()
    assert history["messages"][0]["read"] is True
