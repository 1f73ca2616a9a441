from flask import Blueprint, jsonify

from dependencies import ACTIVE_GEMINI_KEYS
from timezone_utils import get_current_local_datetime
from .config import redis_client

status_bp = Blueprint('status_bp', __name__)

# --- Helper Check Functions ---

def check_redis():
    """Checks if the Redis server holding the profile record is responsive."""
    client = redis_client()
    if client is None:
        return {"status": "ERROR", "details": "Redis client is not configured."}
    try:
        client.ping()
        return {"status": "OK", "details": "Ping successful."}
    except Exception as e:
        return {"status": "ERROR", "details": f"Failed to ping Redis server: {str(e)}"}


def check_gemini_keys():
    """Checks configuration only; no live Gemini call is made."""
    if not ACTIVE_GEMINI_KEYS:
        return {"status": "ERROR", "details": "No GEMINI_API_KEY environment variables found."}
    return {"status": "OK", "details": f"{len(ACTIVE_GEMINI_KEYS)} Gemini API key(s) configured."}


# --- Main Endpoint ---
@status_bp.route('/health')
def health():
    checks = {
        "redis": check_redis(),
        "gemini": check_gemini_keys(),
    }
    healthy = all(result["status"] == "OK" for result in checks.values())
    return jsonify({
        "status": "OK" if healthy else "DEGRADED",
        "checks": checks,
        "timestamp": get_current_local_datetime().strftime('%Y-%m-%d %H:%M:%S %Z'),
    }), 200 if healthy else 503
