"""Status notification dispatch and the manual (custom) send."""

import pytest

from app.core.exceptions import (
    DeliveryFailureException,
    EntityNotFoundException,
    FailedPreconditionException,
    InvalidArgumentException,
)
from app.domain.models.notification_log import NotificationLog
from app.application.services.device_token_service import deactivate_tokens, register_token
from app.application.services.notification_dispatch import (
    build_notification_content,
    derive_notification_kind,
    dispatch_notification,
    reserve_notification,
    send_custom_notification,
)


# ═══════════════════════════════════════════════════════════════════════════════
# KIND DERIVATION
# ═══════════════════════════════════════════════════════════════════════════════

class TestDeriveNotificationKind:
    @pytest.mark.parametrize(
        "previous, new, expected",
        [
            ("submitted", "in-progress", "acknowledgment"),
            ("in-progress", "resolved", "resolution"),
            ("submitted", "resolved", "resolution"),
            ("in-progress", "in-progress", None),
            ("resolved", "closed", None),
            ("in-progress", "submitted", None),
        ],
    )
    def test_transitions(self, previous, new, expected):
        assert derive_notification_kind(previous, new) == expected

    def test_created_submitted_gets_confirmation(self):
        assert derive_notification_kind(None, "submitted", created=True) == "confirmation"

    def test_created_directly_in_progress(self):
        assert derive_notification_kind(None, "in-progress", created=True) == "acknowledgment"


def test_content_uses_category_and_id(make_complaint):
    complaint = make_complaint("ISS-0042", category="Streetlight")
    content = build_notification_content("resolution", complaint)

    assert content["title"] == "✨ Complaint Resolved"
    assert "Streetlight" in content["body"]
    assert "#ISS-0042" in content["body"]
    assert content["action"] == "view_resolution"


# ═══════════════════════════════════════════════════════════════════════════════
# STATUS DISPATCH
# ═══════════════════════════════════════════════════════════════════════════════

class TestDispatchNotification:
    async def test_sends_and_logs(self, db, make_complaint, citizen_token, messaging):
        complaint = make_complaint("ISS-0001")

        log = await dispatch_notification(db, "confirmation", complaint, messaging)

        assert log.status == "sent"
        assert log.message_id == "projects/civic-portal/messages/1"
        assert log.dedup_key == "ISS-0001:submitted"
        payload = messaging.sent[0]
        assert payload["token"] == "fcm-token-citizen-1"
        assert payload["data"]["complaintId"] == "ISS-0001"
        assert payload["data"]["type"] == "confirmation"
        assert payload["data"]["clickAction"].endswith("/complaints/ISS-0001")

    async def test_no_active_token_is_a_noop(self, db, make_complaint, messaging):
        complaint = make_complaint("ISS-0002")

        assert await dispatch_notification(db, "confirmation", complaint, messaging) is None
        assert messaging.sent == []
        assert db.query(NotificationLog).count() == 0

    async def test_inactive_token_is_a_noop(self, db, make_complaint, citizen_token, messaging):
        complaint = make_complaint("ISS-0003")
        deactivate_tokens(db, "citizen-1")

        assert await dispatch_notification(db, "confirmation", complaint, messaging) is None
        assert messaging.sent == []

    async def test_delivery_failure_is_logged_not_raised(self, db, make_complaint, citizen_token, failing_messaging):
        complaint = make_complaint("ISS-0004")

        log = await dispatch_notification(db, "confirmation", complaint, failing_messaging)

        assert log.status == "failed"
        assert "not found" in log.error
        assert db.query(NotificationLog).filter_by(status="failed").count() == 1

    async def test_same_transition_sent_once(self, db, make_complaint, citizen_token, messaging):
        complaint = make_complaint("ISS-0005", status="in-progress")

        first = await dispatch_notification(db, "acknowledgment", complaint, messaging)
        second = await dispatch_notification(db, "acknowledgment", complaint, messaging, source="trigger")

        assert first is not None
        assert second is None
        assert len(messaging.sent) == 1

    async def test_failed_attempt_does_not_block_later_send(self, db, make_complaint, citizen_token, messaging, failing_messaging):
        complaint = make_complaint("ISS-0006", status="in-progress")

        await dispatch_notification(db, "acknowledgment", complaint, failing_messaging)
        log = await dispatch_notification(db, "acknowledgment", complaint, messaging)

        assert log.status == "sent"

    async def test_failed_attempt_releases_claim(self, db, make_complaint, citizen_token, failing_messaging):
        complaint = make_complaint("ISS-0007", status="in-progress")

        log = await dispatch_notification(db, "acknowledgment", complaint, failing_messaging)

        assert log.dedup_key == "ISS-0007:in-progress"
        assert log.claim_key is None

    async def test_in_flight_claim_blocks_second_caller(self, db, make_complaint, citizen_token, messaging):
        complaint = make_complaint("ISS-0008", status="in-progress")
        assert reserve_notification(db, NotificationLog(
            user_id="citizen-1",
            complaint_id="ISS-0008",
            type="acknowledgment",
            title="t",
            body="b",
            status="pending",
            dedup_key="ISS-0008:in-progress",
            claim_key="ISS-0008:in-progress",
        ))

        assert await dispatch_notification(db, "acknowledgment", complaint, messaging, source="trigger") is None
        assert messaging.sent == []
        assert db.query(NotificationLog).count() == 1


# ═══════════════════════════════════════════════════════════════════════════════
# CUSTOM SEND
# ═══════════════════════════════════════════════════════════════════════════════

class TestSendCustomNotification:
    async def test_success(self, db, citizen_token, messaging):
        result = await send_custom_notification(
            db, messaging, "citizen-1", "ISS-0001", "Crew on site", "The repair crew has arrived.",
            sent_by="staff@test.local",
        )

        assert result == {"success": True, "messageId": "projects/civic-portal/messages/1"}
        log = db.query(NotificationLog).one()
        assert log.type == "custom"
        assert log.sent_by == "staff@test.local"

    async def test_missing_fields(self, db, messaging):
        with pytest.raises(InvalidArgumentException) as exc:
            await send_custom_notification(db, messaging, "citizen-1", "ISS-0001", "", "body")
        assert exc.value.kind == "invalid-argument"

    async def test_unknown_user(self, db, messaging):
        with pytest.raises(EntityNotFoundException) as exc:
            await send_custom_notification(db, messaging, "nobody", "ISS-0001", "t", "b")
        assert exc.value.kind == "not-found"

    async def test_inactive_token(self, db, citizen_token, messaging):
        deactivate_tokens(db, "citizen-1")
        with pytest.raises(FailedPreconditionException) as exc:
            await send_custom_notification(db, messaging, "citizen-1", "ISS-0001", "t", "b")
        assert exc.value.kind == "failed-precondition"

    async def test_reactivated_token_is_used(self, db, citizen_token, messaging):
        deactivate_tokens(db, "citizen-1")
        register_token(db, "citizen-1", "fcm-token-new", "android")

        await send_custom_notification(db, messaging, "citizen-1", "ISS-0001", "t", "b")

        assert messaging.sent[0]["token"] == "fcm-token-new"

    async def test_delivery_failure_logs_then_raises(self, db, citizen_token, failing_messaging):
        with pytest.raises(DeliveryFailureException) as exc:
            await send_custom_notification(db, failing_messaging, "citizen-1", "ISS-0001", "t", "b")

        assert exc.value.kind == "internal"
        assert db.query(NotificationLog).filter_by(status="failed").count() == 1
