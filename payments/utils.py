import re
from decimal import Decimal, ROUND_HALF_UP

MOBILE_PATTERN = re.compile(r'^2547\d{8}$')


def format_phone(raw):
    """
    Format a phone number to the 254XXXXXXXXX form.

    Accepts 0712345678, 712345678, 254712345678 and +254712345678 (separators
    are ignored). Returns None for anything else.
    """
    if not raw:
        return None
    compact = re.sub(r'[^0-9+]', '', str(raw))
    if len(compact) == 13 and compact.startswith('+254') and compact[1:].isdigit():
        return compact[1:]

    digits = re.sub(r'[^0-9]', '', compact)
    if len(digits) == 10 and digits.startswith('0'):
        return '254' + digits[1:]
    if len(digits) == 9:
        return '254' + digits
    if len(digits) == 12 and digits.startswith('254'):
        return digits
    return None


def validate_phone(raw) -> bool:
    formatted = format_phone(raw)
    if not formatted:
        return False
    return MOBILE_PATTERN.match(formatted) is not None


def normalize_phone(raw):
    """Return the canonical mobile number, or None when formatting or validation fails."""
    return format_phone(raw) if validate_phone(raw) else None


def format_amount(amount) -> int:
    # M-Pesa takes whole units; halves round up
    return int(Decimal(str(amount)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def sanitize_trans_id(trans_id) -> str:
    return str(trans_id or '').strip().upper()


def detect_account_type(account) -> str:
    """
    Work out whether an account is a paybill or a till.

    An explicit account_type wins; otherwise whichever shortcode is populated
    decides, till first. Defaults to paybill.
    """
    if account.get('account_type'):
        return str(account['account_type']).lower()
    if account.get('till_shortcode'):
        return 'till'
    if account.get('paybill_shortcode'):
        return 'paybill'
    return 'paybill'


def get_active_shortcode(account) -> str:
    account_type = detect_account_type(account)
    if account_type == 'paybill':
        return str(account.get('paybill_shortcode') or '')
    if account_type == 'till':
        return str(account.get('till_shortcode') or '')
    return ''


def get_account_display_name(account) -> str:
    name = account.get('company_business_name') or ''
    account_type = detect_account_type(account)
    shortcode = get_active_shortcode(account)

    if name and shortcode:
        return f"{name} ({shortcode} - {account_type.capitalize()})"
    if shortcode:
        return f"{shortcode} ({account_type.capitalize()})"
    if name:
        return name
    return 'Unknown Account'


def get_payment_instructions(account_type, shortcode, order) -> dict:
    amount = format_amount(order.total)
    reference = order.payment_reference

    instructions = {
        'type': account_type,
        'shortcode': shortcode,
        'amount': amount,
        'reference': reference,
    }
    if account_type == 'paybill':
        instructions['steps'] = [
            'Go to M-Pesa menu on your phone',
            'Select Lipa na M-Pesa',
            'Select Pay Bill',
            f'Enter Business Number: {shortcode}',
            f'Enter Account Number: {reference}',
            f'Enter Amount: {amount}',
            'Enter your M-Pesa PIN',
            'Confirm the transaction',
        ]
    else:
        instructions['steps'] = [
            'Go to M-Pesa menu on your phone',
            'Select Lipa na M-Pesa',
            'Select Buy Goods and Services',
            f'Enter Till Number: {shortcode}',
            f'Enter Amount: {amount}',
            'Enter your M-Pesa PIN',
            'Confirm the transaction',
        ]
    return instructions
