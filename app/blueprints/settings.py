"""Shop settings blueprint."""
from flask import Blueprint, request, jsonify

from app.database import get_session
from app.services.settings_service import get_settings, update_settings

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')


@settings_bp.route('', methods=['GET'])
def read_settings():
    return jsonify(get_settings(get_session()))


@settings_bp.route('', methods=['PUT'])
def save_settings():
    settings = update_settings(request.get_json(silent=True), get_session())
    return jsonify({'message': 'Settings updated successfully', 'settings': settings})
