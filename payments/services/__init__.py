"""HostPay client, order/account adapters and the payment reconciler."""
