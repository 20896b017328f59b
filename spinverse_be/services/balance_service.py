from decimal import Decimal
from flask import current_app

from spinverse_be.models import db, User, UserBalance, Transaction
from spinverse_be.exceptions import InsufficientFundsException, ValidationException
from spinverse_be.error_codes import ErrorCodes
from spinverse_be.utils.security_logger import SecurityLogger

DEBIT_TYPES = ('bet', 'withdraw')
CREDIT_TYPES = ('win', 'deposit', 'bonus')


def get_or_create_balance(user: User, lock: bool = False) -> UserBalance:
    '''
    Returns the user's balance row, creating it with the default balance the
    first time the user touches their wallet.
    '''
    query = UserBalance.query.filter_by(user_id=user.id)
    if lock:
        query = query.with_for_update()
    record = query.first()
    if record is None:
        default_balance = Decimal(str(current_app.config.get('DEFAULT_BALANCE', 1000)))
        record = UserBalance(user_id=user.id, balance=default_balance)
        db.session.add(record)
        db.session.flush()
        current_app.logger.info(f"Created balance record for user {user.id} with default balance {default_balance}.")
    return record


def apply_balance_change(user: User, action: str, amount: Decimal, game_id: int = None):
    '''
    Applies a bet, win, deposit, bonus or withdraw to the user's balance and
    records the matching transaction row.

    Args:
        user: The account being updated.
        action: One of DEBIT_TYPES or CREDIT_TYPES.
        amount: Positive amount in currency units.
        game_id: Optional catalog game the movement belongs to.

    Returns:
        (UserBalance, Transaction) after commit.

    Raises:
        InsufficientFundsException when a debit exceeds the current balance.
    '''
    amount = Decimal(amount)
    if amount <= 0:
        raise ValidationException("Amount must be positive", error_code=ErrorCodes.INVALID_AMOUNT)
    if action not in DEBIT_TYPES + CREDIT_TYPES:
        raise ValidationException(f"Unsupported balance action '{action}'")

    record = get_or_create_balance(user, lock=True)
    balance_before = Decimal(record.balance)

    if action in DEBIT_TYPES:
        if balance_before < amount:
            current_app.logger.warning(f"User {user.id} {action} of {amount} rejected, balance {balance_before}.")
            raise InsufficientFundsException(details={'balance': float(balance_before), 'amount': float(amount)})
        balance_after = balance_before - amount
    else:
        balance_after = balance_before + amount

    record.balance = balance_after
    transaction = Transaction(
        user_id=user.id,
        type=action,
        amount=amount,
        game_id=game_id,
        balance_before=balance_before,
        balance_after=balance_after
    )
    db.session.add(transaction)
    db.session.commit()

    SecurityLogger.log_financial_event(
        event_type=action,
        user_id=user.id,
        amount=amount,
        balance_before=balance_before,
        balance_after=balance_after,
        transaction_id=transaction.id,
        details={'game_id': game_id} if game_id else None
    )
    return record, transaction


def get_transaction_history(user: User, limit: int = 20):
    """Newest first."""
    return (Transaction.query
            .filter_by(user_id=user.id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .all())
