from flask import Blueprint, jsonify

from .config import profiles
from .auth import token_required
from .pydantic_models import BadgesResponse

users_bp = Blueprint('users_bp', __name__)


@users_bp.route('/me', methods=['GET'])
@token_required
def get_my_profile(actor_id):
    profile = profiles().get_profile(actor_id)
    return jsonify(profile.model_dump(mode='json')), 200


@users_bp.route('/me/logs/<log_id>', methods=['DELETE'])
@token_required
def delete_my_log(actor_id, log_id):
    """Deleting an unknown or already deleted log is not an error; the profile comes back unchanged."""
    profile = profiles().delete_log(actor_id, log_id)
    return jsonify(profile.model_dump(mode='json')), 200


@users_bp.route('/me/badges', methods=['GET'])
@token_required
def get_my_badges(actor_id):
    profile = profiles().get_profile(actor_id)
    response = BadgesResponse(badges=[log for log in profile.logs if log.is_badge])
    return jsonify(response.model_dump(mode='json')), 200
