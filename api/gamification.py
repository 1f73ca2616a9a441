import logging
from flask import Blueprint, request, jsonify

from daily_progress import daily_completion
from leaderboard import rankings
from .config import comparison_source, profiles
from .auth import token_required
from .error_utils import validation_error
from .pydantic_models import DailyProgressResponse, LeaderboardResponse

gamification_bp = Blueprint('gamification_bp', __name__)


@gamification_bp.route('/leaderboard', methods=['GET'])
@token_required
def get_leaderboard(actor_id):
    profile = profiles().get_profile(actor_id)
    entries = rankings(profile, comparison_source().participants())
    my_rank = next((e for e in entries if e.isCurrentUser), None)
    response = LeaderboardResponse(entries=entries, myRank=my_rank)
    return jsonify(response.model_dump(mode='json')), 200


@gamification_bp.route('/daily-progress', methods=['GET'])
@token_required
def get_daily_progress(actor_id):
    profile = profiles().get_profile(actor_id)
    reference_date = request.args.get('date')
    try:
        completion = daily_completion(profile.logs, reference_date)
    except ValueError:
        logging.warning(f"Bad daily-progress date from {actor_id}: {reference_date}")
        return validation_error("date must be YYYY-MM-DD")

    response = DailyProgressResponse(**completion.model_dump(), ratio=completion.ratio)
    return jsonify(response.model_dump(mode='json')), 200
