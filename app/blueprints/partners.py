"""Partners and investments blueprints."""
from flask import Blueprint, request, jsonify

from app.database import get_session
from app.services import partner_service
from app.utils.formatters import money_float

partners_bp = Blueprint('partners', __name__, url_prefix='/api/partners')
investments_bp = Blueprint('investments', __name__, url_prefix='/api/investments')


# =====================================================
# PARTNERS
# =====================================================

@partners_bp.route('', methods=['GET'])
def list_partners():
    partners = partner_service.list_partners(get_session())
    return jsonify({'partners': [partner.to_dict() for partner in partners]})


@partners_bp.route('/<int:partner_id>', methods=['GET'])
def get_partner(partner_id):
    return jsonify({'partner': partner_service.get_partner(get_session(), partner_id).to_dict()})


@partners_bp.route('', methods=['POST'])
def create_partner():
    partner = partner_service.create_partner(request.get_json(silent=True), get_session())
    return jsonify({'message': 'Partner created successfully', 'partner': partner.to_dict()}), 201


@partners_bp.route('/<int:partner_id>', methods=['PUT'])
def update_partner(partner_id):
    partner = partner_service.update_partner(partner_id, request.get_json(silent=True), get_session())
    return jsonify({'message': 'Partner updated successfully', 'partner': partner.to_dict()})


@partners_bp.route('/<int:partner_id>', methods=['DELETE'])
def delete_partner(partner_id):
    partner_service.delete_partner(partner_id, get_session())
    return jsonify({'message': 'Partner deleted successfully'})


# =====================================================
# INVESTMENTS
# =====================================================

@investments_bp.route('', methods=['GET'])
def list_investments():
    investments = partner_service.list_investments(get_session())
    return jsonify({'investments': [investment.to_dict() for investment in investments]})


@investments_bp.route('/<int:investment_id>', methods=['GET'])
def get_investment(investment_id):
    investment = partner_service.get_investment(get_session(), investment_id)
    return jsonify({'investment': investment.to_dict()})


@investments_bp.route('/partner/<int:partner_id>', methods=['GET'])
def list_partner_investments(partner_id):
    """Investments of one partner plus the partner's net position."""
    session = get_session()
    balance = partner_service.partner_balance(session, partner_id)
    investments = partner_service.list_investments(session, partner_id)
    return jsonify({
        'investments': [investment.to_dict() for investment in investments],
        'totals': {key: money_float(value) for key, value in balance.items()},
    })


@investments_bp.route('', methods=['POST'])
def create_investment():
    investment = partner_service.create_investment(request.get_json(silent=True), get_session())
    return jsonify({'message': 'Investment record created successfully', 'investment': investment.to_dict()}), 201


@investments_bp.route('/<int:investment_id>', methods=['PUT'])
def update_investment(investment_id):
    investment = partner_service.update_investment(investment_id, request.get_json(silent=True), get_session())
    return jsonify({'message': 'Investment updated successfully', 'investment': investment.to_dict()})


@investments_bp.route('/<int:investment_id>', methods=['DELETE'])
def delete_investment(investment_id):
    partner_service.delete_investment(investment_id, get_session())
    return jsonify({'message': 'Investment deleted successfully'})
