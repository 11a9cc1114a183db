"""
Dashboard service.
Read-side aggregates over partners, investments, inventory and sales,
cached in Redis (module 'dashboard') when the cache is available.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import func, case

from app.models import (
    Partner, PartnerType, Investment, InvestmentType,
    InventoryItem, Sale, SaleLine, PaymentStatus
)
from app.services.inventory_service import low_stock_items
from app.utils.formatters import money_float, iso_date, iso_datetime
from app.utils.payload import parse_choice

GROUP_BY_CHOICES = ('day', 'month', 'year')


def _cached(key: str, loader):
    from app.services.cache_service import get_cache

    ttl = current_app.config.get('CACHE_DASHBOARD_TTL', 60)
    return get_cache().memoize('dashboard', key, loader, ttl)


def _money(value) -> float:
    return money_float(value if value is not None else Decimal('0'))


def get_overview(session, low_stock_threshold: int = 5, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Totals shown on the dashboard cards.

    Args:
        session: SQLAlchemy session
        low_stock_threshold: items with quantity <= threshold count as low stock
        today: business date used for the "today" figures (defaults to date.today())
    """
    today = today or date.today()
    stats: Dict[str, Any] = {}

    # 1. Partners
    partner_rows = session.query(Partner.type, func.count(Partner.id)).group_by(Partner.type).all()
    by_type = {row[0]: row[1] for row in partner_rows}
    stats['totalPartners'] = sum(by_type.values())
    stats['investors'] = by_type.get(PartnerType.INVESTOR.value, 0)
    stats['suppliers'] = by_type.get(PartnerType.SUPPLIER.value, 0)

    # 2. Investments
    investments = session.query(
        func.coalesce(func.sum(case(
            (Investment.type == InvestmentType.INVEST.value, Investment.amount), else_=0
        )), 0).label('total_investments'),
        func.coalesce(func.sum(case(
            (Investment.type == InvestmentType.WITHDRAW.value, Investment.amount), else_=0
        )), 0).label('total_withdrawals'),
        func.count(Investment.id).label('total_transactions'),
    ).one()
    stats['totalInvestments'] = _money(investments.total_investments)
    stats['totalWithdrawals'] = _money(investments.total_withdrawals)
    stats['netInvestments'] = _money(
        Decimal(str(investments.total_investments)) - Decimal(str(investments.total_withdrawals))
    )
    stats['totalInvestmentTransactions'] = investments.total_transactions

    # 3. Inventory
    inventory = session.query(
        func.count(InventoryItem.id).label('total_items'),
        func.coalesce(func.sum(InventoryItem.quantity), 0).label('total_quantity'),
        func.coalesce(func.sum(InventoryItem.quantity * InventoryItem.buy_price), 0).label('total_buy_value'),
        func.coalesce(func.sum(InventoryItem.quantity * InventoryItem.sell_price), 0).label('total_sell_value'),
        func.coalesce(func.sum(case((InventoryItem.quantity == 0, 1), else_=0)), 0).label('out_of_stock'),
        func.coalesce(func.sum(case((InventoryItem.quantity <= low_stock_threshold, 1), else_=0)), 0).label('low_stock'),
    ).one()
    stats['totalInventoryItems'] = inventory.total_items
    stats['totalInventoryQuantity'] = int(inventory.total_quantity)
    stats['totalInventoryBuyValue'] = _money(inventory.total_buy_value)
    stats['totalInventorySellValue'] = _money(inventory.total_sell_value)
    stats['outOfStockItems'] = int(inventory.out_of_stock)
    stats['lowStockItems'] = int(inventory.low_stock)

    # 4. Sales
    sales = session.query(
        func.count(Sale.id).label('total_sales'),
        func.coalesce(func.sum(Sale.total_amount), 0).label('total_revenue'),
        func.coalesce(func.sum(case((Sale.status == PaymentStatus.PAID.value, Sale.total_amount), else_=0)), 0).label('paid_revenue'),
        func.coalesce(func.sum(case((Sale.status == PaymentStatus.UNPAID.value, Sale.total_amount), else_=0)), 0).label('unpaid_revenue'),
        func.coalesce(func.sum(case((Sale.status == PaymentStatus.PAID.value, 1), else_=0)), 0).label('paid_sales'),
        func.coalesce(func.sum(case((Sale.status == PaymentStatus.UNPAID.value, 1), else_=0)), 0).label('unpaid_sales'),
    ).one()
    stats['totalSales'] = sales.total_sales
    stats['totalRevenue'] = _money(sales.total_revenue)
    stats['paidRevenue'] = _money(sales.paid_revenue)
    stats['unpaidRevenue'] = _money(sales.unpaid_revenue)
    stats['paidSales'] = int(sales.paid_sales)
    stats['unpaidSales'] = int(sales.unpaid_sales)

    # 5. Today
    today_row = session.query(
        func.count(Sale.id).label('today_sales'),
        func.coalesce(func.sum(Sale.total_amount), 0).label('today_revenue'),
    ).filter(Sale.date == today).one()
    stats['todaySales'] = today_row.today_sales
    stats['todayRevenue'] = _money(today_row.today_revenue)

    return stats


def get_recent_activities(session, limit: int = 10) -> List[Dict[str, Any]]:
    """Latest sales and investments merged into one feed, newest first."""
    activities = []

    for sale in session.query(Sale).order_by(Sale.created_at.desc(), Sale.id.desc()).limit(limit):
        activities.append({
            'type': 'sale',
            'reference': sale.invoice,
            'item_name': sale.customer_name,
            'amount': money_float(sale.total_amount),
            'status': sale.status,
            'created_at': iso_datetime(sale.created_at),
        })

    for investment in session.query(Investment).order_by(Investment.created_at.desc(), Investment.id.desc()).limit(limit):
        activities.append({
            'type': 'investment',
            'partner_name': investment.partner_name,
            'investment_type': investment.type,
            'amount': money_float(investment.amount),
            'created_at': iso_datetime(investment.created_at),
        })

    activities.sort(key=lambda activity: activity['created_at'] or '', reverse=True)
    return activities[:limit]


def _period_of(value: date, group_by: str) -> str:
    if group_by == 'year':
        return f"{value:%Y}"
    if group_by == 'month':
        return f"{value:%Y-%m}"
    return iso_date(value)


def get_sales_analytics(
    session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    group_by: str = 'day'
) -> List[Dict[str, Any]]:
    """
    Sales per period (day, month or year), newest period first.

    Grouping happens in Python on the sale date so the query is the same on every database.
    """
    parse_choice(group_by, 'group_by', GROUP_BY_CHOICES)

    query = session.query(Sale.date, Sale.total_amount, Sale.status)
    if start_date:
        query = query.filter(Sale.date >= start_date)
    if end_date:
        query = query.filter(Sale.date <= end_date)

    buckets: Dict[str, Dict[str, Any]] = {}
    for sale_date, total_amount, status in query:
        period = _period_of(sale_date, group_by)
        bucket = buckets.setdefault(period, {
            'period': period,
            'total_sales': 0,
            'total_revenue': Decimal('0'),
            'paid_revenue': Decimal('0'),
            'unpaid_revenue': Decimal('0'),
            'partial_revenue': Decimal('0'),
        })
        bucket['total_sales'] += 1
        bucket['total_revenue'] += total_amount
        bucket[f'{status}_revenue'] += total_amount

    analytics = []
    for period in sorted(buckets, reverse=True):
        bucket = buckets[period]
        for key in ('total_revenue', 'paid_revenue', 'unpaid_revenue', 'partial_revenue'):
            bucket[key] = money_float(bucket[key])
        analytics.append(bucket)
    return analytics


def get_top_selling_items(session, limit: int = 10) -> List[Dict[str, Any]]:
    total_quantity = func.sum(SaleLine.quantity)
    rows = (
        session.query(
            SaleLine.item_id,
            SaleLine.item_name,
            func.max(SaleLine.sku).label('sku'),
            total_quantity.label('total_quantity_sold'),
            func.sum(SaleLine.line_total).label('total_revenue'),
            func.count(func.distinct(SaleLine.sale_id)).label('total_transactions'),
            func.avg(SaleLine.unit_price).label('avg_selling_price'),
        )
        .group_by(SaleLine.item_id, SaleLine.item_name)
        .order_by(total_quantity.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            'item_id': row.item_id,
            'item_name': row.item_name,
            'sku': row.sku,
            'total_quantity_sold': int(row.total_quantity_sold or 0),
            'total_revenue': _money(row.total_revenue),
            'total_transactions': row.total_transactions,
            'avg_selling_price': _money(row.avg_selling_price),
        }
        for row in rows
    ]


def get_low_stock_alerts(session, threshold: int = 5) -> List[Dict[str, Any]]:
    return [
        {
            'id': item.id,
            'item_name': item.name,
            'sku': item.sku,
            'quantity': item.quantity,
            'min_stock': item.min_stock,
            'sell_price': money_float(item.sell_price),
            'buy_price': money_float(item.buy_price),
        }
        for item in low_stock_items(session, threshold)
    ]


# =====================================================
# CACHED ENTRY POINTS (used by the blueprint)
# =====================================================

def cached_overview(session, low_stock_threshold: int) -> Dict[str, Any]:
    return _cached(
        f'overview:{low_stock_threshold}:{date.today().isoformat()}',
        lambda: get_overview(session, low_stock_threshold)
    )


def cached_sales_analytics(session, start_date, end_date, group_by: str) -> List[Dict[str, Any]]:
    key = f'analytics:{group_by}:{iso_date(start_date) or "-"}:{iso_date(end_date) or "-"}'
    return _cached(key, lambda: get_sales_analytics(session, start_date, end_date, group_by))


def cached_top_selling_items(session, limit: int) -> List[Dict[str, Any]]:
    return _cached(f'top-items:{limit}', lambda: get_top_selling_items(session, limit))
