"""
Dependency container for the GreenMirror backend.
Reads configuration from the environment and builds shared services lazily,
so importing this module never opens a connection.
"""

import logging
import os
import threading

import redis
from redis.backoff import ExponentialBackoff
from redis.retry import Retry
from dotenv import load_dotenv

load_dotenv()

# --- Environment variables ---
REDIS_URL = os.environ.get('REDIS_URL', 'redis://localhost:6379/0')
PROFILE_STORE_KEY = os.environ.get('PROFILE_STORE_KEY', 'greenmirror_user')
JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'dev-secret-change-me')
GEMINI_ANALYSIS_MODEL = os.environ.get('GEMINI_ANALYSIS_MODEL', 'gemini-2.5-flash')
GEMINI_IMAGE_MODEL = os.environ.get('GEMINI_IMAGE_MODEL', 'gemini-2.5-flash-image')
VISUALIZATION_WORKERS = int(os.environ.get('VISUALIZATION_WORKERS', 4))
MAX_UPLOAD_BYTES = int(os.environ.get('MAX_UPLOAD_BYTES', 20 * 1024 * 1024))
MAX_TEXT_LENGTH = int(os.environ.get('MAX_TEXT_LENGTH', 2000))

# --- Gemini API Keys ---
# Up to 4 keys for redundancy, with a single-key fallback.
GEMINI_API_KEYS = [os.environ.get(f"GEMINI_API_KEY_{i+1}") for i in range(4)]
ACTIVE_GEMINI_KEYS = [key for key in GEMINI_API_KEYS if key]
if not ACTIVE_GEMINI_KEYS and os.environ.get("GEMINI_API_KEY"):
    ACTIVE_GEMINI_KEYS = [os.environ.get("GEMINI_API_KEY")]


# --- Redis Connection Pool with Retry Logic ---
_redis_client = None
_redis_lock = threading.Lock()


def get_redis_connection():
    """
    Shared Redis client over a connection pool with retry logic.
    Returns None when Redis is unreachable.
    """
    global _redis_client
    with _redis_lock:
        if _redis_client is None:
            try:
                retry = Retry(ExponentialBackoff(), retries=3)
                connection_pool = redis.ConnectionPool.from_url(
                    REDIS_URL,
                    decode_responses=True,
                    retry=retry,
                    max_connections=20,
                    health_check_interval=30,
                    socket_connect_timeout=5,
                    socket_timeout=10
                )
                client = redis.Redis(connection_pool=connection_pool)
                client.ping()
                _redis_client = client
                logging.info("Redis connection pool initialized successfully")
            except redis.exceptions.ConnectionError as e:
                logging.error(f"Failed to connect to Redis: {e}")
                return None
    return _redis_client


def build_services(redis_client=None, analyzer=None, visualizer=None, executor=None, comparison_source=None):
    """
    Wires the application services. Anything passed in replaces the default,
    which is how tests substitute fakeredis and fake Gemini collaborators.
    """
    # Local imports keep this module importable without the service modules' dependencies loaded.
    from concurrent.futures import ThreadPoolExecutor
    from gemini_service import GeminiImpactAnalyzer, GeminiKeyRing, GeminiVisualizer
    from leaderboard import StaticComparisonSource
    from profile_service import ProfileService
    from profile_store import ProfileStore
    from session_manager import SessionManager

    redis_client = redis_client if redis_client is not None else get_redis_connection()
    if redis_client is None:
        raise RuntimeError(f"Redis is required for the profile store (REDIS_URL={REDIS_URL})")

    if analyzer is None or visualizer is None:
        key_ring = GeminiKeyRing(ACTIVE_GEMINI_KEYS, redis_client=redis_client)
        analyzer = analyzer or GeminiImpactAnalyzer(key_ring, model=GEMINI_ANALYSIS_MODEL)
        visualizer = visualizer or GeminiVisualizer(key_ring, model=GEMINI_IMAGE_MODEL)

    executor = executor or ThreadPoolExecutor(max_workers=VISUALIZATION_WORKERS, thread_name_prefix='visualize')

    return {
        'redis': redis_client,
        'profiles': ProfileService(ProfileStore(redis_client, key=PROFILE_STORE_KEY)),
        'sessions': SessionManager(analyzer, visualizer, executor=executor),
        'comparison_source': comparison_source or StaticComparisonSource(),
    }
