from abc import ABC, abstractmethod


class PaymentProvider(ABC):
    @abstractmethod
    def initiate_push(self, shortcode, amount, phone_number, reason, account_reference):
        raise NotImplementedError

    @abstractmethod
    def query_push(self, checkout_request_id):
        raise NotImplementedError

    @abstractmethod
    def verify_manual(self, trans_id, bill_ref_number, amount, business_shortcode):
        raise NotImplementedError


class OrderAdapter(ABC):
    """Read and write access to the shop's orders."""

    @abstractmethod
    def get(self, order_id):
        raise NotImplementedError

    @abstractmethod
    def get_for_update(self, order_id):
        """Fresh read of the order, locked until the surrounding atomic() block ends."""
        raise NotImplementedError

    @abstractmethod
    def atomic(self):
        raise NotImplementedError

    @abstractmethod
    def get_meta(self, order, key):
        raise NotImplementedError

    @abstractmethod
    def set_meta(self, order, key, value):
        raise NotImplementedError

    @abstractmethod
    def set_status(self, order, status, note=''):
        raise NotImplementedError

    @abstractmethod
    def add_note(self, order, note):
        raise NotImplementedError

    @abstractmethod
    def mark_paid(self, order, transaction_id):
        raise NotImplementedError

    @abstractmethod
    def save(self, order):
        raise NotImplementedError


class AccountRepository(ABC):
    @abstractmethod
    def list_accounts(self):
        raise NotImplementedError

    @abstractmethod
    def get_selected_account_id(self):
        raise NotImplementedError

    def get_selected_account(self):
        selected = str(self.get_selected_account_id() or '')
        if not selected:
            return None
        for account in self.list_accounts():
            if str(account.id) == selected:
                return account
        return None
