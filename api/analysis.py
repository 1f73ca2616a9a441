import logging
from flask import Blueprint, current_app, request, jsonify

from models import MediaType
from session_manager import SessionState
from .config import profiles, sessions
from .auth import token_required
from .error_utils import bad_request_error, create_error_response, validation_error
from .pydantic_models import CommitResponse, TextAnalysisRequest
from .sanitization import sanitize_activity_text
from extensions import limiter

analysis_bp = Blueprint('analysis_bp', __name__)


def _media_type_from_upload(declared, mimetype):
    """The capture layer's tag wins; otherwise fall back to the upload's MIME family."""
    if declared:
        return MediaType(declared)
    family = (mimetype or '').split('/')[0]
    if family == 'video':
        return MediaType.VIDEO
    if family == 'audio':
        return MediaType.AUDIO
    return MediaType.IMAGE


@analysis_bp.route('/analysis', methods=['POST'])
@token_required
@limiter.limit("30 per hour")
def submit_analysis(actor_id):
    profiles().get_profile(actor_id)  # unknown actors are rejected before any remote call

    if request.is_json:
        req_data = TextAnalysisRequest.model_validate(request.get_json())
        text = sanitize_activity_text(req_data.text, current_app.config['MAX_TEXT_LENGTH'])
        if not text:
            return validation_error("Activity description is empty")
        content, media_type, mimetype = text.encode('utf-8'), MediaType.TEXT, 'text/plain'
    else:
        upload = request.files.get('file')
        if upload is None:
            return bad_request_error("Expected a 'file' upload or a JSON text description")
        try:
            media_type = _media_type_from_upload(request.form.get('mediaType'), upload.mimetype)
        except ValueError:
            return validation_error(f"Unsupported mediaType: {request.form.get('mediaType')}")
        content, mimetype = upload.read(), upload.mimetype
        if not content:
            return validation_error("Uploaded file is empty")
        if len(content) > current_app.config['MAX_UPLOAD_BYTES']:
            return create_error_response("PAYLOAD_TOO_LARGE", status_code=413)

    session = sessions().submit(actor_id, content, media_type, mime_type=mimetype)
    if session.state == SessionState.IDLE:
        # Discarded by the user while the analysis was running.
        return jsonify(session.to_dict()), 200
    return jsonify(session.to_dict()), 201


@analysis_bp.route('/analysis', methods=['GET'])
@token_required
def get_analysis(actor_id):
    session = sessions().current(actor_id)
    if session is None:
        return jsonify({"state": SessionState.IDLE.value}), 200
    return jsonify(session.to_dict()), 200


@analysis_bp.route('/analysis/discard', methods=['POST'])
@token_required
def discard_analysis(actor_id):
    sessions().discard(actor_id)
    return jsonify({"state": SessionState.IDLE.value}), 200


@analysis_bp.route('/analysis/commit', methods=['POST'])
@token_required
def commit_analysis(actor_id):
    """
    Saves the analyzed session to the actor's profile. With ?withBadge=true the
    save is refused until the visualization has arrived.
    """
    if request.args.get('withBadge', '').lower() == 'true':
        session = sessions().current(actor_id)
        if session is not None and not session.can_save_with_badge:
            return create_error_response("SESSION_NOT_READY", "The badge visualization is not ready yet", status_code=409)

    saved = {}

    def persist(entry):
        saved['profile'] = profiles().save_log(actor_id, entry)

    entry = sessions().commit(actor_id, persist=persist)
    logging.info(f"Actor {actor_id} committed log {entry.id}")
    response = CommitResponse(log=entry, profile=saved['profile'])
    return jsonify(response.model_dump(mode='json')), 201
