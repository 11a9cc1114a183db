"""Dashboard blueprint: read-only aggregates for the overview page."""
from flask import Blueprint, request, jsonify, current_app

from app.database import get_session
from app.services import dashboard_service
from app.utils.payload import parse_int, parse_date

dashboard_bp = Blueprint('dashboard', __name__, url_prefix='/api/dashboard')


def _limit_arg(default: int = 10) -> int:
    return parse_int(request.args.get('limit'), 'limit', default=default, minimum=1)


@dashboard_bp.route('/overview', methods=['GET'])
def overview():
    threshold = current_app.config.get('LOW_STOCK_THRESHOLD', 5)
    return jsonify({'stats': dashboard_service.cached_overview(get_session(), threshold)})


@dashboard_bp.route('/recent-activities', methods=['GET'])
def recent_activities():
    activities = dashboard_service.get_recent_activities(get_session(), _limit_arg())
    return jsonify({'activities': activities})


@dashboard_bp.route('/sales-analytics', methods=['GET'])
def sales_analytics():
    """Query: start_date?, end_date? (YYYY-MM-DD), group_by=day|month|year"""
    analytics = dashboard_service.cached_sales_analytics(
        get_session(),
        parse_date(request.args.get('start_date'), 'start_date'),
        parse_date(request.args.get('end_date'), 'end_date'),
        request.args.get('group_by') or 'day',
    )
    return jsonify({'analytics': analytics})


@dashboard_bp.route('/top-selling-items', methods=['GET'])
def top_selling_items():
    return jsonify({'topItems': dashboard_service.cached_top_selling_items(get_session(), _limit_arg())})


@dashboard_bp.route('/low-stock-alerts', methods=['GET'])
def low_stock_alerts():
    threshold = parse_int(
        request.args.get('threshold'), 'threshold',
        default=current_app.config.get('LOW_STOCK_THRESHOLD', 5), minimum=0
    )
    return jsonify({'lowStockItems': dashboard_service.get_low_stock_alerts(get_session(), threshold)})
