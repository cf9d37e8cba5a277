from datetime import datetime, timedelta, timezone

import pytest
from fastapi import status

from app import crud
from app.core import get_settings
from app.schemas import ContactCreate


ALICE = {
    "name": "Alice",
    "email": "alice@example.com",
    "message": "I need a new football, size 5 please.",
}


def create_contact(db_session, name="Bob", age_minutes=0, read=False):
    contact = crud.create_contact_request(
        db_session,
        ContactCreate(
            name=name, email=f"{name.lower()}@example.com", message="Hello there, friend"
        ),
    )
    contact.created_at = datetime.now(timezone.utc) - timedelta(minutes=age_minutes)
    contact.read = read
    db_session.commit()
    return contact


def test_submit_contact_persists_and_notifies(client, db_session, outbox):
    response = client.post("/contact", json={**ALICE, "phone": "0601020304"})
    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["notification"] == {
        "status": "sent",
        "adminEmail": True,
        "clientEmail": True,
        "errors": [],
    }

    stored = crud.get_contact_request(db_session, data["id"])
    assert stored.read is False
    assert stored.phone == "0601020304"

    recipients = [str(getattr(m.recipients[0], "email", m.recipients[0])) for m in outbox.sent]
    assert sorted(recipients) == ["alice@example.com", "shop@example.com"]


@pytest.mark.parametrize(
    "length, accepted",
    [(9, False), (10, True), (1000, True), (1001, False)],
)
def test_message_length_bounds(client, length, accepted):
    response = client.post("/contact", json={**ALICE, "message": "x" * length})
    if accepted:
        assert response.status_code == status.HTTP_201_CREATED
    else:
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"][0]["field"] == "message"


@pytest.mark.parametrize(
    "field, value",
    [
        ("name", ""),
        ("name", "   "),
        ("name", "n" * 101),
        ("email", "not-an-email"),
        ("email", "a" * 64 + "@" + "b" * 40 + ".com"),
    ],
)
def test_invalid_submission_is_not_stored(client, db_session, outbox, field, value):
    response = client.post("/contact", json={**ALICE, field: value})
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    body = response.json()
    assert body["error"] == "validation_error"
    assert [d["field"] for d in body["details"]] == [field]
    assert crud.list_contact_requests(db_session, crud.ContactFilter()) == []
    assert outbox.sent == []


def test_failed_notifications_do_not_fail_submission(client, db_session, outbox):
    outbox.fail_for = {"alice@example.com", "shop@example.com"}
    response = client.post("/contact", json=ALICE)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["success"] is True
    assert data["id"]
    assert data["notification"]["status"] == "failed"
    assert data["notification"]["errors"] == ["Admin email failed", "Client email failed"]
    assert crud.get_contact_request(db_session, data["id"]) is not None


def test_one_failed_notification_is_partial(client, outbox):
    outbox.fail_for = {"shop@example.com"}
    data = client.post("/contact", json=ALICE).json()

    assert data["notification"]["status"] == "partial"
    assert data["notification"]["adminEmail"] is False
    assert data["notification"]["clientEmail"] is True


def test_unbuildable_admin_notice_is_partial(client, db_session, outbox, monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_EMAIL", "shop-admin")
    response = client.post("/contact", json=ALICE)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["notification"]["status"] == "partial"
    assert data["notification"]["adminEmail"] is False
    assert data["notification"]["clientEmail"] is True
    assert crud.get_contact_request(db_session, data["id"]) is not None
    assert [str(getattr(m.recipients[0], "email", m.recipients[0])) for m in outbox.sent] == [
        "alice@example.com"
    ]


def test_list_contacts_newest_first(client, db_session, auth_headers):
    create_contact(db_session, "Old", age_minutes=10)
    create_contact(db_session, "New", age_minutes=1)
    create_contact(db_session, "Seen", age_minutes=5, read=True)

    everything = client.get("/contacts", headers=auth_headers).json()
    assert [c["name"] for c in everything] == ["New", "Seen", "Old"]

    unread = client.get("/contacts", params={"read": False}, headers=auth_headers).json()
    assert [c["name"] for c in unread] == ["New", "Old"]


def test_contacts_triage_requires_admin(client, db_session):
    contact = create_contact(db_session)
    assert client.get("/contacts").status_code == status.HTTP_401_UNAUTHORIZED
    assert (
        client.put(f"/contacts/{contact.id}", json={"read": True}).status_code
        == status.HTTP_401_UNAUTHORIZED
    )
    assert client.delete(f"/contacts/{contact.id}").status_code == status.HTTP_401_UNAUTHORIZED


def test_missing_contact(client, auth_headers):
    assert client.get("/contacts/missing", headers=auth_headers).status_code == 404
    assert (
        client.put("/contacts/missing", json={"read": True}, headers=auth_headers).status_code
        == 404
    )
    assert client.delete("/contacts/missing", headers=auth_headers).status_code == 404


def test_contact_scenario(client, auth_headers):
    created = client.post("/contact", json=ALICE)
    assert created.status_code == status.HTTP_201_CREATED
    contact_id = created.json()["id"]

    unread = client.get("/contacts", params={"read": False}, headers=auth_headers).json()
    assert [c["id"] for c in unread] == [contact_id]
    assert unread[0]["read"] is False

    marked = client.put(
        f"/contacts/{contact_id}", json={"read": True}, headers=auth_headers
    )
    assert marked.status_code == status.HTTP_200_OK
    assert marked.json()["read"] is True

    unread = client.get("/contacts", params={"read": False}, headers=auth_headers).json()
    read = client.get("/contacts", params={"read": True}, headers=auth_headers).json()
    assert contact_id not in [c["id"] for c in unread]
    assert [c["id"] for c in read] == [contact_id]

    deleted = client.delete(f"/contacts/{contact_id}", headers=auth_headers)
    assert deleted.status_code == status.HTTP_200_OK
    assert client.get("/contacts", headers=auth_headers).json() == []
