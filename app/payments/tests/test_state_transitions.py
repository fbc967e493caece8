"""
Tests for Refund state machine transitions using django-fsm.
"""

import pytest
from django_fsm import TransitionNotAllowed

from payments.state_machines import RefundStatus
from payments.tests.factories import RefundFactory


class TestRefundTransitions:
    def test_created_to_complete(self, db):
        refund = RefundFactory()

        refund.complete()
        refund.save()

        refund.refresh_from_db()
        assert refund.status == RefundStatus.COMPLETE

    def test_created_to_failed_records_reason(self, db):
        refund = RefundFactory()

        refund.fail(reason="expired_or_canceled_card")
        refund.save()

        refund.refresh_from_db()
        assert refund.status == RefundStatus.FAILED
        assert refund.failure_reason == "expired_or_canceled_card"

    @pytest.mark.parametrize("terminal", [RefundStatus.COMPLETE, RefundStatus.FAILED])
    def test_terminal_refund_cannot_transition(self, db, terminal):
        refund = RefundFactory(status=terminal)

        with pytest.raises(TransitionNotAllowed):
            refund.complete()
        with pytest.raises(TransitionNotAllowed):
            refund.fail(reason="late")
