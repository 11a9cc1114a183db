"""Shop settings (single row, camelCase JSON)."""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.models import ShopSettings, SETTINGS_FIELDS
from app.exceptions import ValidationError, PersistenceError
from app.utils.payload import parse_decimal, parse_int, is_missing

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ('taxRate', 'warrantyPeriod')


def current_settings(session) -> Optional[ShopSettings]:
    """Latest settings row, or None if the shop never saved any."""
    return session.query(ShopSettings).order_by(ShopSettings.id.desc()).first()


def get_settings(session) -> Dict[str, Any]:
    settings = current_settings(session)
    if settings is None:
        return ShopSettings.defaults()
    return settings.to_dict()


def _parse_settings(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Map a camelCase body to column values, validating the constrained fields."""
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    if is_missing(data.get('shopName')) or is_missing(data.get('shopPhone')):
        raise ValidationError('Shop name and phone number are required')

    values = {}
    if not is_missing(data.get('taxRate')):
        values['tax_rate'] = parse_decimal(data.get('taxRate'), 'taxRate')
        if not 0 <= values['tax_rate'] <= 100:
            raise ValidationError('Tax rate must be between 0 and 100')

    if not is_missing(data.get('warrantyPeriod')):
        values['warranty_period'] = parse_int(data.get('warrantyPeriod'), 'warrantyPeriod')
        if values['warranty_period'] < 0:
            raise ValidationError('Warranty period cannot be negative')

    for key, attr in SETTINGS_FIELDS.items():
        if key in NUMERIC_FIELDS or key not in data:
            continue
        value = data.get(key)
        values[attr] = '' if value is None else str(value).strip()

    return values


def update_settings(data: Optional[Dict[str, Any]], session) -> Dict[str, Any]:
    """
    Save settings, creating the row on first save.

    Raises:
        ValidationError: shopName/shopPhone missing, taxRate outside 0-100, negative warrantyPeriod
    """
    values = _parse_settings(data)

    try:
        settings = current_settings(session)
        if settings is None:
            settings = ShopSettings()
            session.add(settings)
        for attr, value in values.items():
            setattr(settings, attr, value)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[SETTINGS] Database error saving settings: {e}")
        raise PersistenceError('Failed to update settings')

    logger.info(f"[SETTINGS] Settings saved for '{settings.shop_name}'")
    return settings.to_dict()
