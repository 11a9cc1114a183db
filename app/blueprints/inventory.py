"""Inventory blueprint: item CRUD, search and stock adjustment."""
from flask import Blueprint, request, jsonify

from app.database import get_session
from app.services import inventory_service
from app.stores import get_store

inventory_bp = Blueprint('inventory', __name__, url_prefix='/api/inventory')


@inventory_bp.route('', methods=['GET'])
def list_items():
    items = inventory_service.list_items(get_session())
    return jsonify({'inventory': [item.to_dict() for item in items]})


@inventory_bp.route('/search', methods=['GET'])
def search_items():
    items = inventory_service.search_items(get_session(), request.args.get('q'))
    return jsonify({'inventory': [item.to_dict() for item in items]})


@inventory_bp.route('/<int:item_id>', methods=['GET'])
def get_item(item_id):
    return jsonify({'item': inventory_service.get_item(get_session(), item_id).to_dict()})


@inventory_bp.route('/sku/<sku>', methods=['GET'])
def get_item_by_sku(sku):
    return jsonify({'item': inventory_service.get_item_by_sku(get_session(), sku).to_dict()})


@inventory_bp.route('', methods=['POST'])
def create_item():
    item = inventory_service.create_item(request.get_json(silent=True), get_session())
    return jsonify({'message': 'Item created successfully', 'item': item.to_dict()}), 201


@inventory_bp.route('/<int:item_id>', methods=['PUT'])
def update_item(item_id):
    item = inventory_service.update_item(item_id, request.get_json(silent=True), get_session())
    return jsonify({'message': 'Item updated successfully', 'item': item.to_dict()})


@inventory_bp.route('/<int:item_id>/quantity', methods=['PATCH'])
def adjust_quantity(item_id):
    """Body: {quantity, operation: add|subtract|set}"""
    return jsonify(inventory_service.adjust_stock(item_id, request.get_json(silent=True), get_store()))


@inventory_bp.route('/<int:item_id>', methods=['DELETE'])
def delete_item(item_id):
    inventory_service.delete_item(item_id, get_session())
    return jsonify({'message': 'Item deleted successfully'})
