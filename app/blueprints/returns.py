"""Returns blueprint."""
from flask import Blueprint, request, jsonify

from app.database import get_session
from app.services import return_service
from app.utils.formatters import money_float

returns_bp = Blueprint('returns', __name__, url_prefix='/api/returns')


@returns_bp.route('', methods=['GET'])
def list_returns():
    returns = return_service.list_returns(get_session())
    return jsonify({'returns': [sale_return.to_dict() for sale_return in returns]})


@returns_bp.route('/<int:return_id>', methods=['GET'])
def get_return(return_id):
    return jsonify({'return': return_service.get_return(get_session(), return_id).to_dict()})


@returns_bp.route('/sale/<int:sale_id>', methods=['GET'])
def list_sale_returns(sale_id):
    returns = return_service.list_returns(get_session(), sale_id=sale_id)
    return jsonify({'returns': [sale_return.to_dict() for sale_return in returns]})


@returns_bp.route('', methods=['POST'])
def create_return():
    sale_return = return_service.create_return(request.get_json(silent=True), get_session())
    return jsonify({
        'message': 'Return created successfully',
        'returnId': sale_return.id,
        'refundAmount': money_float(sale_return.refund_amount),
        'return': sale_return.to_dict(),
    }), 201


@returns_bp.route('/<int:return_id>', methods=['PUT'])
def update_return(return_id):
    sale_return = return_service.update_return(return_id, request.get_json(silent=True), get_session())
    return jsonify({'message': 'Return updated successfully', 'return': sale_return.to_dict()})


@returns_bp.route('/<int:return_id>', methods=['DELETE'])
def delete_return(return_id):
    return_service.delete_return(return_id, get_session())
    return jsonify({'message': 'Return deleted successfully'})
