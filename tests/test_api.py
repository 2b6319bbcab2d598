"""
HTTP API tests.

Uses FastAPI's TestClient against the in-memory database. Background trigger
processing runs inline after each response, so both notification paths fire.
"""

import base64
import os

from app.application.services.auth_service import create_access_token
from app.domain.models.user import User
from app.domain.models.civic_issue import CivicIssue
from app.domain.models.device_token import DeviceToken
from app.domain.models.notification_log import NotificationLog
from app.domain.models.status_history import StatusHistory


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH / AUTH
# ═══════════════════════════════════════════════════════════════════════════════

class TestHealthAndAuth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}

    def test_login(self, client, staff_headers):
        resp = client.post("/api/auth/login", json={"email": "staff@test.local", "password": "staff123"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["department"] == "Public Works"

    def test_login_wrong_password(self, client, staff_headers):
        resp = client.post("/api/auth/login", json={"email": "staff@test.local", "password": "nope"})
        assert resp.status_code == 401
        assert resp.json()["error"]["kind"] == "unauthenticated"

    def test_me(self, client, staff_headers):
        resp = client.get("/api/auth/me", headers=staff_headers)
        assert resp.status_code == 200
        assert resp.json()["email"] == "staff@test.local"

    def test_no_token(self, client, db):
        resp = client.get("/api/complaints")
        assert resp.status_code == 401
        assert resp.json()["error"]["kind"] == "unauthenticated"

    def test_role_claim_does_not_grant_admin(self, client, staff_headers):
        token = create_access_token(data={"sub": "staff@test.local", "role": "super_admin"})

        resp = client.post("/api/notifications/process-triggers", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403

    def test_deactivated_user_rejected(self, client, db, staff_headers):
        db.query(User).filter(User.email == "staff@test.local").update({"is_active": False})
        db.commit()

        resp = client.get("/api/auth/me", headers=staff_headers)

        assert resp.status_code == 401

    def test_register_requires_admin(self, client, staff_headers):
        resp = client.post(
            "/api/auth/register",
            json={"name": "X", "email": "x@test.local", "password": "pw"},
            headers=staff_headers,
        )
        assert resp.status_code == 403

    def test_register(self, client, admin_headers):
        resp = client.post(
            "/api/auth/register",
            json={"name": "X", "email": "x@test.local", "password": "pw", "city": "Pune"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json()["role"] == "staff"

    def test_logout_deactivates_tokens(self, client, db, staff_headers, citizen_token):
        resp = client.post("/api/auth/logout", json={"user_id": "citizen-1"}, headers=staff_headers)

        assert resp.status_code == 200
        assert resp.json()["tokens_deactivated"] == 1
        db.expire_all()
        assert db.get(DeviceToken, "citizen-1_web").is_active is False


# ═══════════════════════════════════════════════════════════════════════════════
# COMPLAINTS
# ═══════════════════════════════════════════════════════════════════════════════

class TestComplaints:
    def _create(self, client, headers, complaint_id="ISS-0001", **extra):
        body = {"id": complaint_id, "user_id": "citizen-1", "category": "Pothole", **extra}
        return client.post("/api/complaints", json=body, headers=headers)

    def test_create_notifies_once(self, client, db, staff_headers, citizen_token, messaging):
        resp = self._create(client, staff_headers)

        assert resp.status_code == 201
        assert resp.json()["status"] == "submitted"
        assert len(messaging.sent) == 1
        assert db.query(NotificationLog).count() == 1

    def test_list_filters(self, client, staff_headers):
        self._create(client, staff_headers, "ISS-0001", priority="high")
        self._create(client, staff_headers, "ISS-0002", priority="low")

        resp = client.get("/api/complaints", params={"priority": "high"}, headers=staff_headers)

        assert resp.status_code == 200
        assert resp.json()["total"] == 1
        assert resp.json()["items"][0]["id"] == "ISS-0001"

    def test_get_unknown(self, client, staff_headers):
        resp = client.get("/api/complaints/ISS-0000", headers=staff_headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["kind"] == "not-found"

    def test_status_update_unknown(self, client, db, staff_headers, messaging):
        resp = client.patch(
            "/api/complaints/ISS-0000/status",
            json={"status": "in-progress"},
            headers=staff_headers,
        )

        assert resp.status_code == 404
        assert db.query(StatusHistory).count() == 0
        assert messaging.sent == []

    def test_status_update_round_trip(self, client, staff_headers):
        self._create(client, staff_headers)

        resp = client.patch(
            "/api/complaints/ISS-0001/status",
            json={"status": "resolved", "notes": "fixed", "resolution_image": "proofs/ISS-0001.jpg"},
            headers=staff_headers,
        )
        assert resp.status_code == 200

        data = client.get("/api/complaints/ISS-0001", headers=staff_headers).json()
        assert data["status"] == "resolved"
        assert data["resolution_notes"] == "fixed"
        assert data["resolution_image"] == "proofs/ISS-0001.jpg"

    def test_invalid_status_value(self, client, staff_headers):
        self._create(client, staff_headers)

        resp = client.patch("/api/complaints/ISS-0001/status", json={"status": "archived"}, headers=staff_headers)

        assert resp.status_code == 422

    def test_assign_single_acknowledgment(self, client, db, staff_headers, citizen_token, messaging):
        self._create(client, staff_headers)

        resp = client.post(
            "/api/complaints/ISS-0001/assign",
            json={"assigned_to": "R. Patil", "department": "Public Works"},
            headers=staff_headers,
        )

        assert resp.status_code == 200
        assert resp.json()["status"] == "in-progress"
        kinds = [log.type for log in db.query(NotificationLog).order_by(NotificationLog.id).all()]
        assert kinds == ["confirmation", "acknowledgment"]

    def test_resolve_with_upload(self, client, staff_headers):
        self._create(client, staff_headers)

        resp = client.post(
            "/api/complaints/ISS-0001/resolve",
            data={"notes": "Pothole filled"},
            files={"image": ("after.jpg", b"jpeg-bytes", "image/jpeg")},
            headers=staff_headers,
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "resolved"
        assert data["resolution_image"].endswith(".jpg")

    def test_rejected_status_change_stores_no_image(self, client, staff_headers, make_complaint, image_store):
        make_complaint("ISS-0009", status="closed")
        data_uri = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()

        resp = client.patch(
            "/api/complaints/ISS-0009/status",
            json={"status": "resolved", "notes": "fixed", "resolution_image": data_uri},
            headers=staff_headers,
        )

        assert resp.status_code == 422
        assert resp.json()["error"]["kind"] == "failed-precondition"
        assert not os.path.isdir(image_store.base_dir) or os.listdir(image_store.base_dir) == []

    def test_missing_notes_stores_no_image(self, client, staff_headers, image_store):
        self._create(client, staff_headers)
        data_uri = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()

        resp = client.patch(
            "/api/complaints/ISS-0001/status",
            json={"status": "resolved", "resolution_image": data_uri},
            headers=staff_headers,
        )

        assert resp.status_code == 400
        assert not os.path.isdir(image_store.base_dir) or os.listdir(image_store.base_dir) == []

    def test_resolve_closed_complaint_stores_no_image(self, client, staff_headers, make_complaint, image_store):
        make_complaint("ISS-0009", status="closed")

        resp = client.post(
            "/api/complaints/ISS-0009/resolve",
            data={"notes": "Pothole filled"},
            files={"image": ("after.jpg", b"jpeg-bytes", "image/jpeg")},
            headers=staff_headers,
        )

        assert resp.status_code == 422
        assert not os.path.isdir(image_store.base_dir) or os.listdir(image_store.base_dir) == []

    def test_history(self, client, staff_headers):
        self._create(client, staff_headers)
        client.patch("/api/complaints/ISS-0001/status", json={"status": "in-progress"}, headers=staff_headers)

        resp = client.get("/api/complaints/ISS-0001/history", headers=staff_headers)

        assert resp.status_code == 200
        assert [(h["previous_status"], h["new_status"]) for h in resp.json()] == [("submitted", "in-progress")]

    def test_sla(self, client, staff_headers):
        self._create(client, staff_headers, priority="high")

        resp = client.get("/api/complaints/ISS-0001/sla", params={"policy": "priority"}, headers=staff_headers)

        assert resp.status_code == 200
        data = resp.json()
        assert data["breached"] is False
        assert data["threshold_seconds"] == 24 * 3600
        assert 0 < data["seconds_remaining"] <= 24 * 3600


# ═══════════════════════════════════════════════════════════════════════════════
# NOTIFICATIONS
# ═══════════════════════════════════════════════════════════════════════════════

class TestNotifications:
    def test_send_custom(self, client, staff_headers, citizen_token):
        resp = client.post(
            "/api/notifications/send",
            json={"userId": "citizen-1", "complaintId": "ISS-0001", "title": "Update", "body": "Crew arrives today"},
            headers=staff_headers,
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "messageId": "projects/civic-portal/messages/1"}

    def test_send_unauthenticated(self, client, db):
        resp = client.post("/api/notifications/send", json={"userId": "citizen-1"})
        assert resp.json()["error"]["kind"] == "unauthenticated"

    def test_send_missing_fields(self, client, staff_headers):
        resp = client.post("/api/notifications/send", json={"userId": "citizen-1"}, headers=staff_headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["kind"] == "invalid-argument"

    def test_send_no_token(self, client, staff_headers):
        resp = client.post(
            "/api/notifications/send",
            json={"userId": "nobody", "complaintId": "ISS-0001", "title": "t", "body": "b"},
            headers=staff_headers,
        )
        assert resp.json()["error"]["kind"] == "not-found"

    def test_send_inactive_token(self, client, staff_headers, citizen_token):
        client.delete("/api/notifications/tokens/citizen-1", headers=staff_headers)

        resp = client.post(
            "/api/notifications/send",
            json={"userId": "citizen-1", "complaintId": "ISS-0001", "title": "t", "body": "b"},
            headers=staff_headers,
        )
        assert resp.json()["error"]["kind"] == "failed-precondition"

    def test_send_delivery_failure(self, client, staff_headers, citizen_token, messaging):
        messaging.fail = True

        resp = client.post(
            "/api/notifications/send",
            json={"userId": "citizen-1", "complaintId": "ISS-0001", "title": "t", "body": "b"},
            headers=staff_headers,
        )
        assert resp.status_code == 502
        assert resp.json()["error"]["kind"] == "internal"

    def test_register_token_and_list_logs(self, client, staff_headers):
        resp = client.post(
            "/api/notifications/tokens",
            json={"user_id": "citizen-9", "token": "tok-9", "device_type": "android"},
            headers=staff_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["id"] == "citizen-9_android"

        client.post(
            "/api/notifications/send",
            json={"userId": "citizen-9", "complaintId": "ISS-0009", "title": "t", "body": "b"},
            headers=staff_headers,
        )
        logs = client.get("/api/notifications", params={"user_id": "citizen-9"}, headers=staff_headers).json()
        assert logs["total"] == 1
        assert logs["items"][0]["sent_by"] == "staff@test.local"

    def test_process_triggers_admin_only(self, client, staff_headers, admin_headers):
        assert client.post("/api/notifications/process-triggers", headers=staff_headers).status_code == 403
        resp = client.post("/api/notifications/process-triggers", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json() == {"processed": 0, "notified": 0}


# ═══════════════════════════════════════════════════════════════════════════════
# DIRECTORY / DASHBOARD
# ═══════════════════════════════════════════════════════════════════════════════

class TestDirectoryAndDashboard:
    def test_directory(self, client, db, staff_headers):
        db.add(CivicIssue(city="Pune", department="Public Works", category="Pothole"))
        db.commit()

        assert client.get("/api/directory/cities", headers=staff_headers).json()["cities"] == ["Pune"]
        resp = client.get("/api/directory/categories", params={"city": "Pune"}, headers=staff_headers)
        assert resp.status_code == 400

    def test_dashboard_summary(self, client, staff_headers):
        client.post("/api/complaints", json={"id": "ISS-0001", "user_id": "c", "category": "Pothole"}, headers=staff_headers)
        client.post("/api/complaints", json={"id": "ISS-0002", "user_id": "c", "category": "Garbage"}, headers=staff_headers)
        client.patch(
            "/api/complaints/ISS-0002/status",
            json={"status": "resolved", "notes": "done"},
            headers=staff_headers,
        )

        data = client.get("/api/dashboard/summary", headers=staff_headers).json()

        assert data["stats"]["total_issues"] == 2
        assert data["stats"]["resolved"] == 1
        assert data["stats"]["pending"] == 1
        assert data["sla_policy"] == "priority"

    def test_sla_check(self, client, admin_headers):
        resp = client.post("/api/dashboard/sla/check", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["escalated"] == 0
