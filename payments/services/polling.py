import threading

from payments import conf

from .reconciliation import MANUAL_FALLBACK, FailureKind, ReconciliationResult

SETTLED_STATUSES = ('completed', 'cancelled', 'failed')


def poll_until_settled(reconciler, order_id, max_attempts=None, interval=None, cancel_event=None):
    """
    Poll an STK push until it settles, the caller cancels, or attempts run out.

    cancel_event is a threading.Event; setting it stops the loop before the
    next attempt. Exhausting the attempts returns a "timeout" result pointing
    the payer to manual verification.
    """
    max_attempts = conf.poll_max_attempts() if max_attempts is None else max_attempts
    interval = conf.poll_interval() if interval is None else interval
    cancel_event = cancel_event or threading.Event()

    result = None
    for attempt in range(1, max_attempts + 1):
        if cancel_event.is_set():
            break
        result = reconciler.poll(order_id)
        if result.status in SETTLED_STATUSES or result.reason == 'no_request':
            return result
        if attempt < max_attempts and cancel_event.wait(interval):
            break

    if cancel_event.is_set():
        return ReconciliationResult(
            success=False,
            status='stopped',
            reason='stopped',
            message='Payment status checks were stopped.',
            request_id=result.request_id if result else '',
        )

    return ReconciliationResult(
        success=False,
        status='timeout',
        reason='timeout',
        kind=FailureKind.API_ERROR if result and result.status == 'error' else None,
        message="We couldn't confirm your payment automatically. Please use manual payment.",
        fallback=MANUAL_FALLBACK,
        request_id=result.request_id if result else '',
    )
