from unittest.mock import AsyncMock, patch
import httpx
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from models import User, Role, Conversation, Message
from schemas import Identity

def test_chat_requires_session(client: TestClient):
    response = client.get("/api/local/conversations")
    assert response.status_code == 401
    assert response.json() == {"message": "Non authentifié"}

def test_chat_forbidden_for_client_role(client: TestClient, test_user: User, login_as):
    login_as(test_user)

    for response in (
        client.get("/api/local/conversations"),
        client.post("/api/local/conversations", json={"participantId": "someone"}),
    ):
        assert response.status_code == 403
        assert response.json() == {"message": "Accès refusé"}

def test_create_conversation_is_idempotent_in_either_order(client: TestClient, employee_user: User, admin_user: User, login_as):
    login_as(employee_user)
    first = client.post("/api/local/conversations", json={"participantId": admin_user.id})
    again = client.post("/api/local/conversations", json={"participantId": admin_user.id})

    login_as(admin_user)
    reversed_order = client.post("/api/local/conversations", json={"participantId": employee_user.id})

    assert first.status_code == again.status_code == reversed_order.status_code == 200
    assert first.json()["id"] == again.json()["id"] == reversed_order.json()["id"]
    assert first.json()["participantIds"] == sorted([employee_user.id, admin_user.id])
    assert first.json()["lastMessage"] is None

def test_create_conversation_requires_participant(client: TestClient, employee_user: User, login_as):
    login_as(employee_user)

    response = client.post("/api/local/conversations", json={})

    assert response.status_code == 400
    assert response.json() == {"message": "participantId requis"}

def test_send_message_updates_preview(client: TestClient, session: Session, employee_user: User, admin_user: User, login_as):
    login_as(employee_user)
    conversation_id = client.post("/api/local/conversations", json={"participantId": admin_user.id}).json()["id"]
    long_text = "  " + "x" * 150 + "  "

    response = client.post(f"/api/local/conversations/{conversation_id}/messages", json={"content": long_text})

    assert response.status_code == 200
    message = response.json()
    assert message["content"] == "x" * 150
    assert message["senderId"] == employee_user.id
    assert message["conversationId"] == conversation_id

    conversation = session.query(Conversation).filter_by(id=conversation_id).one()
    session.refresh(conversation)
    assert conversation.last_message == "x" * 100
    assert conversation.last_message_at is not None

def test_list_messages_in_order(client: TestClient, employee_user: User, admin_user: User, login_as):
    login_as(employee_user)
    conversation_id = client.post("/api/local/conversations", json={"participantId": admin_user.id}).json()["id"]
    client.post(f"/api/local/conversations/{conversation_id}/messages", json={"content": "Bonjour"})
    login_as(admin_user)
    client.post(f"/api/local/conversations/{conversation_id}/messages", json={"content": "Salut"})

    response = client.get(f"/api/local/conversations/{conversation_id}/messages")

    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["Bonjour", "Salut"]
    assert [m["senderId"] for m in response.json()] == [employee_user.id, admin_user.id]

def test_list_conversations_for_participant(client: TestClient, make_user, employee_user: User, admin_user: User, login_as):
    superadmin = make_user("boss@example.com", role=Role.superadmin)
    login_as(employee_user)
    quiet = client.post("/api/local/conversations", json={"participantId": superadmin.id}).json()
    active = client.post("/api/local/conversations", json={"participantId": admin_user.id}).json()
    client.post(f"/api/local/conversations/{active['id']}/messages", json={"content": "Dernier message"})

    response = client.get("/api/local/conversations")

    assert response.status_code == 200
    conversations = response.json()
    assert [c["id"] for c in conversations] == [active["id"], quiet["id"]]
    assert conversations[0]["lastMessage"] == "Dernier message"

    login_as(admin_user)
    assert [c["id"] for c in client.get("/api/local/conversations").json()] == [active["id"]]

def test_messages_hidden_from_non_participant(client: TestClient, make_user, employee_user: User, admin_user: User, login_as):
    outsider = make_user("outsider@example.com", role=Role.employee)
    login_as(employee_user)
    conversation_id = client.post("/api/local/conversations", json={"participantId": admin_user.id}).json()["id"]

    login_as(outsider)
    listed = client.get(f"/api/local/conversations/{conversation_id}/messages")
    sent = client.post(f"/api/local/conversations/{conversation_id}/messages", json={"content": "Intrus"})

    assert listed.status_code == sent.status_code == 404
    assert listed.json() == {"message": "Conversation non trouvée"}

def test_blank_message_rejected(client: TestClient, session: Session, employee_user: User, admin_user: User, login_as):
    login_as(employee_user)
    conversation_id = client.post("/api/local/conversations", json={"participantId": admin_user.id}).json()["id"]

    response = client.post(f"/api/local/conversations/{conversation_id}/messages", json={"content": "   "})

    assert response.status_code == 400
    assert response.json() == {"message": "Contenu requis"}
    assert session.query(Message).count() == 0

@patch('chat.fetch_remote_identity', new_callable=AsyncMock)
@patch('chat.config.CHAT_AUTH_MODE', "remote")
def test_remote_mode_uses_external_identity(mock_fetch, client: TestClient):
    mock_fetch.return_value = Identity(user_id="ext-employee", role="employee")

    response = client.post(
        "/api/local/conversations",
        json={"participantId": "ext-admin"},
        headers={"Cookie": "connect.sid=abc"}
    )

    assert response.status_code == 200
    assert response.json()["participantIds"] == ["ext-admin", "ext-employee"]
    mock_fetch.assert_awaited_once_with("connect.sid=abc")

@patch('chat.fetch_remote_identity', new_callable=AsyncMock)
@patch('chat.config.CHAT_AUTH_MODE', "remote")
def test_remote_mode_rejections(mock_fetch, client: TestClient):
    mock_fetch.return_value = None
    assert client.get("/api/local/conversations").status_code == 401

    mock_fetch.return_value = Identity(user_id="ext-client", role="client")
    assert client.get("/api/local/conversations").status_code == 403

@patch('chat.fetch_remote_identity', new_callable=AsyncMock)
@patch('chat.config.CHAT_AUTH_MODE', "remote")
def test_remote_mode_network_failure_is_500(mock_fetch, client: TestClient):
    mock_fetch.side_effect = httpx.ConnectError("unreachable")

    response = client.get("/api/local/conversations")

    assert response.status_code == 500
    assert response.json() == {"message": "Erreur serveur"}

@patch('chat.config.CHAT_AUTH_MODE', "remote")
def test_remote_mode_malformed_identity_is_401(client: TestClient):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"id": "u1"}))
        return real_client(transport=transport, **kwargs)

    with patch('remote_auth.httpx.AsyncClient', side_effect=factory):
        response = client.get("/api/local/conversations", headers={"Cookie": "connect.sid=abc"})

    assert response.status_code == 401
    assert response.json() == {"message": "Non authentifié"}
