import logging
import datetime
from functools import wraps

import jwt
from flask import Blueprint, current_app, request, jsonify

from exceptions import NoActiveSessionError
from profile_mutators import is_guest_id
from .config import profiles, sessions
from .pydantic_models import AuthResponse, LoginRequest
from .sanitization import sanitize_display_name
from extensions import limiter

auth_bp = Blueprint('auth_bp', __name__)

TOKEN_LIFETIME = datetime.timedelta(days=30)


# --- Helpers ---
def issue_token(actor_id):
    payload = {'actor_id': actor_id, 'exp': datetime.datetime.now(datetime.timezone.utc) + TOKEN_LIFETIME}
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm="HS256")


def _decode_bearer():
    """Returns (actor_id, error_code). Both are None when no token was sent."""
    auth_header = request.headers.get('Authorization')
    if not auth_header or not auth_header.startswith('Bearer '):
        return None, None
    token = auth_header.split(' ', 1)[1]
    try:
        data = jwt.decode(token, current_app.config['JWT_SECRET_KEY'], algorithms=["HS256"])
        return data['actor_id'], None
    except (jwt.ExpiredSignatureError, jwt.InvalidTokenError, KeyError):
        return None, "TOKEN_INVALID"


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        actor_id, error_code = _decode_bearer()
        if error_code: return jsonify({"error_code": error_code}), 401
        if not actor_id: return jsonify({"error_code": "TOKEN_MISSING"}), 401
        kwargs['actor_id'] = actor_id
        return f(*args, **kwargs)
    return decorated


def _drop_session(actor_id):
    try:
        sessions().discard(actor_id)
    except NoActiveSessionError:
        pass


# --- Endpoints ---
@auth_bp.route('/auth/guest', methods=['POST'])
@limiter.limit("20 per hour")
def start_guest():
    guest = profiles().start_guest()
    response = AuthResponse(token=issue_token(guest.id), profile=guest)
    return jsonify(response.model_dump(mode='json')), 201


@auth_bp.route('/auth/login', methods=['POST'])
def login():
    """
    Signs in the (single) identified user. When called with a guest's token,
    the guest's history is merged into the identified profile exactly once.
    """
    req_data = LoginRequest.model_validate(request.get_json(silent=True) or {})
    actor_id, _ = _decode_bearer()
    guest_id = actor_id if actor_id and is_guest_id(actor_id) else None

    profile = profiles().sign_in(
        name=sanitize_display_name(req_data.name),
        email=req_data.email or "",
        guest_id=guest_id,
    )
    if guest_id:
        _drop_session(guest_id)
        logging.info(f"Guest {guest_id} signed in as {profile.id}")

    response = AuthResponse(token=issue_token(profile.id), profile=profile)
    return jsonify(response.model_dump(mode='json')), 200


@auth_bp.route('/auth/logout', methods=['POST'])
@token_required
def logout(actor_id):
    """
    Discards the actor's open analysis session and signs it out. A guest loses
    its in-memory profile; the identified user's durable record is cleared.
    """
    _drop_session(actor_id)
    profiles().sign_out(actor_id)
    return jsonify({"message": "Logout successful"}), 200
