"""Main blueprint: service status."""
from flask import Blueprint, jsonify

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    return jsonify({'message': 'POS System API is running', 'status': 'ok'})
