"""
Tests for STK push initiation and status polling.
"""
from unittest.mock import MagicMock

import pytest

from conftest import push_status
from payments.models import Order
from payments.services.accounts import StaticAccountRepository
from payments.services.hostpay import ApiResult, ErrorKind
from payments.services.orders import OrderNotFound
from payments.services.reconciliation import FailureKind, PaymentReconciler


def notes(order: Order) -> list:
    return list(order.notes.values_list("note", flat=True))


@pytest.mark.django_db
class TestInitiate:
    """Test suite for PaymentReconciler.initiate."""

    @pytest.mark.unit
    def test_sends_push_and_records_request(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        result = reconciler.initiate(order.pk, "0712345678")

        assert result.success
        assert result.status == "pending"
        assert result.request_id == "ws_CO_123"
        hostpay.initiate_push.assert_called_once_with(
            shortcode="600100",
            amount=1000,
            phone_number="254712345678",
            reason=f"Payment for Order #{order.pk}",
            account_reference=str(order.pk),
        )

        order.refresh_from_db()
        assert order.push_request_id == "ws_CO_123"
        assert order.phone_number == "254712345678"
        assert order.payment_method_chosen == Order.Method.PUSH
        assert order.status == Order.Status.PENDING
        assert notes(order) == ["Awaiting M-Pesa payment confirmation."]

    @pytest.mark.unit
    def test_invalid_phone_makes_no_call(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        result = reconciler.initiate(order.pk, "12345")

        assert not result.success
        assert result.reason == "invalid_phone"
        assert result.kind == FailureKind.INVALID_INPUT
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_non_mobile_number_is_rejected(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        result = reconciler.initiate(order.pk, "254812345678")

        assert result.reason == "invalid_phone"
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_missing_account(self, hostpay: MagicMock, audit: MagicMock, order: Order) -> None:
        from payments.services.orders import DjangoOrderAdapter

        reconciler = PaymentReconciler(
            client=hostpay,
            orders=DjangoOrderAdapter(),
            accounts=StaticAccountRepository([], selected_account_id=""),
            logger=audit,
        )

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.reason == "not_configured"
        assert result.kind == FailureKind.CONFIGURATION
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_till_account_uses_till_shortcode(self, hostpay: MagicMock, audit: MagicMock, order: Order) -> None:
        from conftest import PAYBILL_ACCOUNT, TILL_ACCOUNT
        from payments.services.orders import DjangoOrderAdapter

        reconciler = PaymentReconciler(
            client=hostpay,
            orders=DjangoOrderAdapter(),
            accounts=StaticAccountRepository([PAYBILL_ACCOUNT, TILL_ACCOUNT], selected_account_id=8),
            logger=audit,
        )

        reconciler.initiate(order.pk, "0712345678")

        assert hostpay.initiate_push.call_args.kwargs["shortcode"] == "5123456"

    @pytest.mark.unit
    def test_remote_failure(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        hostpay.initiate_push.return_value = ApiResult.failure(ErrorKind.API_ERROR, "Invalid shortcode", 422)

        result = reconciler.initiate(order.pk, "0712345678")

        assert not result.success
        assert result.reason == "initiate_failed"
        assert result.kind == FailureKind.API_ERROR
        order.refresh_from_db()
        assert order.push_request_id == ""

    @pytest.mark.unit
    def test_response_without_request_id(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        hostpay.initiate_push.return_value = ApiResult.success({"success": True, "message": "Queued"})

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.reason == "initiate_failed"
        order.refresh_from_db()
        assert order.push_request_id == ""

    @pytest.mark.unit
    def test_nested_legacy_request_id(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        hostpay.initiate_push.return_value = ApiResult.success({"data": {"CheckoutRequestID": "ws_CO_legacy"}})

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.request_id == "ws_CO_legacy"

    @pytest.mark.unit
    def test_reinitiate_replaces_request_id(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        reconciler.initiate(order.pk, "0712345678")
        hostpay.initiate_push.return_value = ApiResult.success({"checkout_request_id": "ws_CO_456"})

        reconciler.initiate(order.pk, "0712345678")

        order.refresh_from_db()
        assert order.push_request_id == "ws_CO_456"

    @pytest.mark.unit
    def test_paid_order_short_circuits(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        order.status = Order.Status.COMPLETED
        order.transaction_id = "QGH7XYZ123"
        order.save()

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.success
        assert result.status == "completed"
        assert result.message == "This order has already been paid"
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_closed_order_points_to_manual(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        order.status = Order.Status.CANCELLED
        order.save()

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.reason == "order_closed"
        assert result.fallback == "manual"
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_manual_only_mode(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        reconciler.payment_mode = "manual_only"

        result = reconciler.initiate(order.pk, "0712345678")

        assert result.reason == "method_disabled"
        hostpay.initiate_push.assert_not_called()

    @pytest.mark.unit
    def test_unknown_order(self, reconciler: PaymentReconciler, db) -> None:
        with pytest.raises(OrderNotFound):
            reconciler.initiate(999999, "0712345678")


@pytest.mark.django_db
class TestPoll:
    """Test suite for PaymentReconciler.poll."""

    @pytest.fixture
    def pushed(self, reconciler: PaymentReconciler, order: Order) -> Order:
        reconciler.initiate(order.pk, "0712345678")
        order.refresh_from_db()
        return order

    @pytest.mark.unit
    def test_success_completes_order(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="0", mpesa_receipt_number="QGH7XYZ123")

        result = reconciler.poll(pushed.pk)

        assert result.success
        assert result.status == "completed"
        assert result.transaction_id == "QGH7XYZ123"
        hostpay.query_push.assert_called_once_with("ws_CO_123")

        pushed.refresh_from_db()
        assert pushed.status == Order.Status.COMPLETED
        assert pushed.transaction_id == "QGH7XYZ123"
        assert pushed.date_paid is not None
        assert pushed.payment_data == {"result_code": "0", "mpesa_receipt_number": "QGH7XYZ123"}
        assert "M-Pesa payment completed. Transaction ID: QGH7XYZ123" in notes(pushed)
        assert "Payment received and order completed." in notes(pushed)

    @pytest.mark.unit
    def test_status_field_completion(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(status="success", MpesaReceiptNumber="QGH7XYZ124")

        result = reconciler.poll(pushed.pk)

        assert result.status == "completed"
        assert result.transaction_id == "QGH7XYZ124"

    @pytest.mark.unit
    def test_completion_without_receipt_uses_request_id(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code=0)

        result = reconciler.poll(pushed.pk)

        assert result.transaction_id == "ws_CO_123"

    @pytest.mark.unit
    def test_user_cancelled(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="1032", result_desc="Request cancelled by user")

        result = reconciler.poll(pushed.pk)

        assert not result.success
        assert result.status == "cancelled"
        assert result.fallback == "manual"
        assert result.kind == FailureKind.REMOTE_DECLARED_FAILURE
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.CANCELLED
        assert "Payment cancelled by user." in notes(pushed)

    @pytest.mark.unit
    def test_failure_keeps_description(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="2001", result_desc="Wrong PIN")

        result = reconciler.poll(pushed.pk)

        assert result.status == "failed"
        assert result.message == "Wrong PIN"
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.FAILED
        assert "Payment failed: Wrong PIN" in notes(pushed)

    @pytest.mark.unit
    def test_no_response_yet_stays_pending(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="1037")

        result = reconciler.poll(pushed.pk)

        assert result.success
        assert result.status == "pending"
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.PENDING

    @pytest.mark.unit
    def test_undecided_response_is_pending(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(status="processing")

        result = reconciler.poll(pushed.pk)

        assert result.status == "pending"
        assert result.message == "Waiting for payment confirmation..."

    @pytest.mark.unit
    def test_query_error_leaves_order_alone(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = ApiResult.failure(ErrorKind.API_ERROR, "read timed out")

        result = reconciler.poll(pushed.pk)

        assert not result.success
        assert result.status == "error"
        assert result.reason == "query_failed"
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.PENDING

    @pytest.mark.unit
    def test_without_request(self, reconciler: PaymentReconciler, hostpay: MagicMock, order: Order) -> None:
        result = reconciler.poll(order.pk)

        assert result.reason == "no_request"
        hostpay.query_push.assert_not_called()

    @pytest.mark.unit
    def test_cancelled_order_is_not_queried_again(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="1032")
        reconciler.poll(pushed.pk)

        result = reconciler.poll(pushed.pk)

        assert result.status == "cancelled"
        assert hostpay.query_push.call_count == 1

    @pytest.mark.unit
    def test_repeated_success_completes_once(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(result_code="0", mpesa_receipt_number="QGH7XYZ123")

        reconciler.poll(pushed.pk)
        result = reconciler.poll(pushed.pk)

        assert result.status == "completed"
        assert hostpay.query_push.call_count == 1
        pushed.refresh_from_db()
        assert notes(pushed).count("Payment received and order completed.") == 1

    @pytest.mark.unit
    def test_legacy_root_code_cancels(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = ApiResult.success({"ResultCode": 1032, "ResultDesc": "Request cancelled by user"})

        result = reconciler.poll(pushed.pk)

        assert result.status == "cancelled"
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.CANCELLED

    @pytest.mark.unit
    def test_legacy_root_no_response_stays_pending(self, reconciler: PaymentReconciler, hostpay: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = ApiResult.success({"ResultCode": "1037"})

        result = reconciler.poll(pushed.pk)

        assert result.status == "pending"
        pushed.refresh_from_db()
        assert pushed.status == Order.Status.PENDING

    @pytest.mark.unit
    def test_logs_which_field_decided(self, reconciler: PaymentReconciler, hostpay: MagicMock, audit: MagicMock, pushed: Order) -> None:
        hostpay.query_push.return_value = push_status(status="failed", result_desc="Insufficient funds")

        reconciler.poll(pushed.pk)

        audit.debug.assert_any_call(
            "STK Push status read from status",
            {"outcome": "failed", "description": "Insufficient funds"},
        )
