"""
Readers for HostPay response payloads.

The bridge API has renamed fields between versions (CheckoutRequestID vs
checkout_request_id, ResultCode vs result_code, MpesaReceiptNumber vs
mpesa_receipt_number, ...). Each value is read through an ordered list of
candidate paths and the first one present wins, so old and new backends are
both understood. Order matters in every tuple below.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

Path = Tuple[str, ...]

REQUEST_ID_PATHS: Sequence[Path] = (
    ('checkout_request_id',),
    ('CheckoutRequestID',),
    ('data', 'checkout_request_id'),
    ('data', 'CheckoutRequestID'),
)

RECEIPT_PATHS: Sequence[Path] = (
    ('data', 'TransID'),
    ('mpesa_receipt_number',),
    ('MpesaReceiptNumber',),
    ('TransID',),
    ('trans_id',),
)

PAID_AMOUNT_PATHS: Sequence[Path] = (
    ('data', 'TransAmount'),
    ('amount',),
)

SUCCESS_CODE = '0'
CANCELLED_CODE = '1032'
# No answer from the payer yet; the prompt may still be on their phone
NO_RESPONSE_CODE = '1037'


class PushOutcome(str, Enum):
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    FAILED = 'failed'
    PENDING = 'pending'


@dataclass
class PushStatus:
    outcome: PushOutcome
    description: str = ''
    source: str = 'none'
    payload: Dict[str, Any] = field(default_factory=dict)


def _present(value) -> bool:
    return value is not None and value != ''


def dig(payload, path: Path):
    current = payload
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def first_present(payload, paths: Sequence[Path]):
    for path in paths:
        value = dig(payload, path)
        if _present(value):
            return value
    return None


def extract_request_id(response) -> str:
    value = first_present(response, REQUEST_ID_PATHS)
    return str(value) if value is not None else ''


def extract_receipt(payload) -> str:
    value = first_present(payload, RECEIPT_PATHS)
    return str(value) if value is not None else ''


def extract_paid_amount(response) -> float:
    value = first_present(response, PAID_AMOUNT_PATHS)
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def response_data(response) -> Dict[str, Any]:
    data = response.get('data') if isinstance(response, dict) else None
    if isinstance(data, dict):
        return data
    return response if isinstance(response, dict) else {}


def outcome_for_code(code) -> PushOutcome:
    code = str(code)
    if code == SUCCESS_CODE:
        return PushOutcome.COMPLETED
    if code == CANCELLED_CODE:
        return PushOutcome.CANCELLED
    if code == NO_RESPONSE_CODE:
        return PushOutcome.PENDING
    return PushOutcome.FAILED


def from_result_code(response) -> Optional[PushStatus]:
    data = response_data(response)
    code = data.get('result_code')
    if code is None:
        return None
    description = data.get('result_desc') or data.get('result_description') or ''
    return PushStatus(outcome_for_code(code), str(description), 'result_code', data)


def from_status_field(response) -> Optional[PushStatus]:
    data = response_data(response)
    status = data.get('status')
    if status in ('completed', 'success'):
        return PushStatus(PushOutcome.COMPLETED, '', 'status', data)
    if status == 'failed':
        description = data.get('result_desc') or data.get('result_description') or ''
        return PushStatus(PushOutcome.FAILED, str(description), 'status', data)
    return None


def from_legacy_result_code(response) -> Optional[PushStatus]:
    # Root-level ResultCode from older backends goes through the same code
    # table as result_code, so 1032 cancels the order and 1037 stays pending.
    if not isinstance(response, dict) or response.get('ResultCode') is None:
        return None
    return PushStatus(
        outcome_for_code(response['ResultCode']),
        str(response.get('ResultDesc') or ''),
        'legacy_result_code',
        response,
    )


PUSH_STATUS_STRATEGIES: Sequence[Callable[[Any], Optional[PushStatus]]] = (
    from_result_code,
    from_status_field,
    from_legacy_result_code,
)


def interpret_push_status(response) -> PushStatus:
    for strategy in PUSH_STATUS_STRATEGIES:
        status = strategy(response)
        if status is not None:
            return status
    return PushStatus(PushOutcome.PENDING, payload=response_data(response))
