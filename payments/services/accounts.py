from dataclasses import dataclass
from typing import Iterable, List, Optional

from django.db import transaction

from payments import conf
from payments.models import MpesaAccount
from payments.utils import detect_account_type, get_account_display_name, get_active_shortcode

from .base import AccountRepository


class AccountSyncError(Exception):
    pass


@dataclass(frozen=True)
class Account:
    id: str
    shortcode_type: str
    shortcode: str
    business_name: str = ''
    display_name: str = ''

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=str(data.get('id', '')),
            shortcode_type=detect_account_type(data),
            shortcode=get_active_shortcode(data),
            business_name=data.get('company_business_name') or '',
            display_name=get_account_display_name(data),
        )


class DjangoAccountRepository(AccountRepository):
    """Accounts synced into MpesaAccount rows; selection comes from settings."""

    def __init__(self, selected_account_id=None):
        self.selected_account_id = selected_account_id

    def list_accounts(self) -> List[Account]:
        return [Account.from_dict(a.as_dict()) for a in MpesaAccount.objects.order_by('id')]

    def get_selected_account_id(self):
        if self.selected_account_id is not None:
            return str(self.selected_account_id)
        return conf.selected_account_id()


class StaticAccountRepository(AccountRepository):
    def __init__(self, accounts: Iterable, selected_account_id=''):
        self.accounts = [a if isinstance(a, Account) else Account.from_dict(a) for a in accounts]
        self.selected_account_id = str(selected_account_id or '')

    def list_accounts(self) -> List[Account]:
        return list(self.accounts)

    def get_selected_account_id(self):
        return self.selected_account_id


def resolve_account(repository: AccountRepository) -> Optional[Account]:
    """The selected account, provided its active shortcode is set."""
    account = repository.get_selected_account()
    if account is None or not account.shortcode:
        return None
    return account


def sync_accounts(client) -> int:
    """Replace the stored accounts with the list HostPay returns. Returns the count."""
    result = client.list_accounts()
    if not result.ok:
        raise AccountSyncError(result.message)

    remote_accounts = result.data.get('data')
    if not isinstance(remote_accounts, list):
        raise AccountSyncError('Invalid response from API. Please check your API key.')

    seen = []
    with transaction.atomic():
        for raw in remote_accounts:
            if not isinstance(raw, dict) or raw.get('id') in (None, ''):
                continue
            remote_id = str(raw['id'])
            MpesaAccount.objects.update_or_create(
                remote_id=remote_id,
                defaults={
                    'company_business_name': raw.get('company_business_name') or '',
                    'account_type': raw.get('account_type') or '',
                    'paybill_shortcode': str(raw.get('paybill_shortcode') or ''),
                    'till_shortcode': str(raw.get('till_shortcode') or ''),
                    'raw': raw,
                },
            )
            seen.append(remote_id)
        MpesaAccount.objects.exclude(remote_id__in=seen).delete()
    return len(seen)
