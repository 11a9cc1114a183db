"""Partners (investors and suppliers) and their investment ledger."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.models import Partner, PartnerType, Investment, InvestmentType
from app.exceptions import ValidationError, NotFoundError, ConflictError, PersistenceError
from app.services.cache_service import invalidate_dashboard
from app.utils.formatters import to_money
from app.utils.payload import parse_decimal, parse_int, clean_text, is_missing

logger = logging.getLogger(__name__)


def _commit(session, action: str):
    """Commit and drop cached dashboard totals, or roll back and raise PersistenceError."""
    try:
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[PARTNERS] Database error ({action}): {e}")
        raise PersistenceError(f'Failed to {action}')
    invalidate_dashboard()


# =====================================================
# PARTNERS
# =====================================================

def list_partners(session) -> List[Partner]:
    return session.query(Partner).order_by(Partner.created_at.desc(), Partner.id.desc()).all()


def get_partner(session, partner_id: int) -> Partner:
    partner = session.get(Partner, partner_id)
    if partner is None:
        raise NotFoundError('Partner not found', {'partner_id': partner_id})
    return partner


def _parse_partner(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    name = clean_text(data.get('name'))
    partner_type = data.get('type')
    if not name or is_missing(partner_type):
        raise ValidationError('Name and type are required')
    if partner_type not in [t.value for t in PartnerType]:
        raise ValidationError('Type must be either investor or supplier')

    return {'name': name, 'type': partner_type, 'phone_no': clean_text(data.get('phone_no'))}


def create_partner(data: Dict[str, Any], session) -> Partner:
    partner = Partner(**_parse_partner(data))
    session.add(partner)
    _commit(session, 'create partner')
    logger.info(f"[PARTNERS] Partner {partner.id} created ({partner.type})")
    return partner


def update_partner(partner_id: int, data: Dict[str, Any], session) -> Partner:
    fields = _parse_partner(data)
    partner = get_partner(session, partner_id)
    for attr, value in fields.items():
        setattr(partner, attr, value)
    _commit(session, 'update partner')
    return partner


def delete_partner(partner_id: int, session) -> None:
    """
    Raises:
        NotFoundError: partner does not exist
        ConflictError: partner still has investment records
    """
    partner = get_partner(session, partner_id)
    has_investments = (
        session.query(Investment.id).filter(Investment.partner_id == partner_id).first() is not None
    )
    if has_investments:
        raise ConflictError(
            'Partner has investment records and cannot be deleted',
            {'partner_id': partner_id}
        )
    session.delete(partner)
    _commit(session, 'delete partner')


# =====================================================
# INVESTMENTS
# =====================================================

def list_investments(session, partner_id: Optional[int] = None) -> List[Investment]:
    query = session.query(Investment)
    if partner_id is not None:
        query = query.filter(Investment.partner_id == partner_id)
    return query.order_by(Investment.created_at.desc(), Investment.id.desc()).all()


def get_investment(session, investment_id: int) -> Investment:
    investment = session.get(Investment, investment_id)
    if investment is None:
        raise NotFoundError('Investment not found', {'investment_id': investment_id})
    return investment


def _parse_investment(data: Optional[Dict[str, Any]], session) -> Dict[str, Any]:
    """Validate an investment body and resolve the partner (name is snapshotted)."""
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    investment_type = data.get('type')
    if is_missing(data.get('partner_id')) or is_missing(investment_type) or is_missing(data.get('amount')):
        raise ValidationError('Partner ID, type, and amount are required')
    if investment_type not in [t.value for t in InvestmentType]:
        raise ValidationError('Type must be either invest or withdraw')

    amount = parse_decimal(data.get('amount'), 'amount')
    if amount <= 0:
        raise ValidationError('Amount must be greater than 0')

    partner = get_partner(session, parse_int(data.get('partner_id'), 'partner_id'))

    return {
        'partner_id': partner.id,
        'partner_name': partner.name,
        'type': investment_type,
        'amount': amount,
        'notes': clean_text(data.get('notes')),
    }


def create_investment(data: Dict[str, Any], session) -> Investment:
    investment = Investment(**_parse_investment(data, session))
    session.add(investment)
    _commit(session, 'create investment')
    logger.info(
        f"[PARTNERS] {investment.type} of {investment.amount} recorded for partner {investment.partner_id}"
    )
    return investment


def update_investment(investment_id: int, data: Dict[str, Any], session) -> Investment:
    investment = get_investment(session, investment_id)
    fields = _parse_investment(data, session)
    for attr, value in fields.items():
        setattr(investment, attr, value)
    _commit(session, 'update investment')
    return investment


def delete_investment(investment_id: int, session) -> None:
    investment = get_investment(session, investment_id)
    session.delete(investment)
    _commit(session, 'delete investment')


def partner_balance(session, partner_id: int) -> Dict[str, Any]:
    """Net position of a partner: invested minus withdrawn."""
    get_partner(session, partner_id)
    invested = to_money(0)
    withdrawn = to_money(0)
    for investment in list_investments(session, partner_id):
        if investment.type == InvestmentType.INVEST.value:
            invested += to_money(investment.amount)
        else:
            withdrawn += to_money(investment.amount)
    return {'invested': invested, 'withdrawn': withdrawn, 'net': invested - withdrawn}
