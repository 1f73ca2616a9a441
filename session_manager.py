"""
Analysis session lifecycle.

One session drives a captured piece of media through impact analysis, then a
best-effort visualization, and ends with commit (log saved) or discard.

    IDLE -> SUBMITTED -> ANALYZING -> ANALYZED_AWAITING_VISUALIZATION
                                         |-> ANALYZED_WITH_VISUALIZATION
                                         |-> ANALYZED_WITHOUT_VISUALIZATION
                              `-> FAILED (actor is back to IDLE)

Each actor has at most one in-flight session. Analysis runs in the caller's
thread; visualization is handed to an executor and its answer is applied only
if the session that asked for it is still the actor's current one.
"""

import itertools
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from exceptions import AnalysisError, NoActiveSessionError, SessionBusyError, SessionNotReadyError
from image_resizer import sniff_image_mime
from models import AnalysisResult, LogEntry, MediaType
from profile_mutators import new_log_entry
from timezone_utils import utc_now_iso

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = 'idle'
    SUBMITTED = 'submitted'
    ANALYZING = 'analyzing'
    AWAITING_VISUALIZATION = 'analyzed_awaiting_visualization'
    WITH_VISUALIZATION = 'analyzed_with_visualization'
    WITHOUT_VISUALIZATION = 'analyzed_without_visualization'
    FAILED = 'failed'


IN_FLIGHT_STATES = {SessionState.SUBMITTED, SessionState.ANALYZING, SessionState.AWAITING_VISUALIZATION}
ANALYZED_STATES = {SessionState.AWAITING_VISUALIZATION, SessionState.WITH_VISUALIZATION, SessionState.WITHOUT_VISUALIZATION}

DEFAULT_MIME_TYPES = {
    MediaType.IMAGE: 'image/jpeg',
    MediaType.VIDEO: 'video/mp4',
    MediaType.AUDIO: 'audio/webm',
    MediaType.TEXT: 'text/plain',
}


def derive_mime_hint(content: bytes, media_type: MediaType, declared_mime: Optional[str] = None) -> str:
    """
    MIME hint for the analysis engine. The medium tag comes from how the input
    was captured; the declared type is trusted only when it agrees with it.
    """
    if media_type == MediaType.TEXT:
        return DEFAULT_MIME_TYPES[media_type]
    if declared_mime and declared_mime.split('/')[0] == media_type.value:
        return declared_mime
    if media_type == MediaType.IMAGE:
        return sniff_image_mime(content) or DEFAULT_MIME_TYPES[media_type]
    return DEFAULT_MIME_TYPES[media_type]


@dataclass
class CapturedMedia:
    content: Optional[bytes]
    media_type: MediaType
    mime_type: str

    @property
    def released(self) -> bool:
        return self.content is None

    def release(self):
        self.content = None


@dataclass
class AnalysisSession:
    session_id: int
    actor_id: str
    media: CapturedMedia
    state: SessionState = SessionState.SUBMITTED
    result: Optional[AnalysisResult] = None
    visualization_url: Optional[str] = None
    error: Optional[str] = None
    created_at: str = field(default_factory=utc_now_iso)

    @property
    def can_save_with_badge(self) -> bool:
        return self.state == SessionState.WITH_VISUALIZATION

    def release(self):
        self.media.release()
        self.visualization_url = None

    def to_dict(self) -> dict:
        return {
            'sessionId': self.session_id,
            'state': self.state.value,
            'mediaType': self.media.media_type.value,
            'result': self.result.model_dump(mode='json') if self.result else None,
            'visualizationUrl': self.visualization_url,
            'canSaveWithBadge': self.can_save_with_badge,
            'error': self.error,
            'createdAt': self.created_at,
        }


class SessionManager:
    def __init__(self, analyzer, visualizer, executor=None, clock: Callable[[], str] = utc_now_iso):
        """
        Args:
            analyzer: object with analyze(content, mime_hint) -> AnalysisResult
            visualizer: object with visualize(summary, score) -> image handle
            executor: concurrent.futures-style executor running visualization calls
            clock: returns the ISO timestamp stamped on committed log entries
        """
        self.analyzer = analyzer
        self.visualizer = visualizer
        self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix='visualize')
        self.clock = clock
        self._sessions = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # --- Queries ---

    def current(self, actor_id: str) -> Optional[AnalysisSession]:
        with self._lock:
            return self._sessions.get(actor_id)

    def state(self, actor_id: str) -> SessionState:
        session = self.current(actor_id)
        return session.state if session else SessionState.IDLE

    def _is_current(self, session: AnalysisSession) -> bool:
        return self._sessions.get(session.actor_id) is session

    # --- Transitions ---

    def submit(self, actor_id: str, content: bytes, media_type, mime_type: Optional[str] = None) -> AnalysisSession:
        """
        Starts a session and runs the analysis stage. Returns the session once
        analysis has finished (visualization may still be pending).

        Raises:
            SessionBusyError: the actor already has a session in flight
            AnalysisError: analysis failed; the actor is back to IDLE
        """
        media_type = MediaType(media_type)
        if not content:
            raise ValueError("Submitted content is empty")

        with self._lock:
            existing = self._sessions.get(actor_id)
            if existing is not None and existing.state in IN_FLIGHT_STATES:
                raise SessionBusyError(actor_id, existing.state.value)
            if existing is not None:
                # A finished but uncommitted session is superseded by the new one.
                existing.release()
                existing.state = SessionState.IDLE

            media = CapturedMedia(content=content, media_type=media_type,
                                  mime_type=derive_mime_hint(content, media_type, mime_type))
            session = AnalysisSession(session_id=next(self._ids), actor_id=actor_id, media=media)
            self._sessions[actor_id] = session

        logger.info(f"Session {session.session_id} submitted by {actor_id} ({media.mime_type}, {len(content)} bytes)")
        return self._run_analysis(session)

    def _run_analysis(self, session: AnalysisSession) -> AnalysisSession:
        with self._lock:
            if not self._is_current(session):
                logger.warning(f"Session {session.session_id} was discarded before analysis started")
                return session
            session.state = SessionState.ANALYZING
            content, mime_type = session.media.content, session.media.mime_type

        try:
            result = self.analyzer.analyze(content, mime_type)
        except Exception as e:
            with self._lock:
                session.state = SessionState.FAILED
                session.error = str(e)
                session.release()
                if self._is_current(session):
                    del self._sessions[session.actor_id]
            logger.error(f"Analysis failed for session {session.session_id}: {e}", exc_info=True)
            if isinstance(e, AnalysisError):
                raise
            raise AnalysisError(f"Analysis failed: {e}") from e

        with self._lock:
            if not self._is_current(session):
                logger.warning(f"Session {session.session_id} was discarded during analysis, result dropped")
                return session
            session.result = result
            session.state = SessionState.AWAITING_VISUALIZATION

        logger.info(f"Session {session.session_id} analyzed: {result.mainCategory.value}, score {result.totalCarbonScore}")
        try:
            self.executor.submit(self._run_visualization, session.session_id, session.actor_id,
                                 result.summary, result.totalCarbonScore)
        except RuntimeError as e:
            # Executor shut down; the analysis still stands.
            logger.warning(f"Could not schedule visualization for session {session.session_id}: {e}")
            with self._lock:
                if self._is_current(session):
                    session.state = SessionState.WITHOUT_VISUALIZATION
        return session

    def _run_visualization(self, session_id: int, actor_id: str, summary: str, score: int):
        handle, failure = None, None
        try:
            handle = self.visualizer.visualize(summary, score)
        except Exception as e:
            failure = e

        with self._lock:
            session = self._sessions.get(actor_id)
            if session is None or session.session_id != session_id \
                    or session.state != SessionState.AWAITING_VISUALIZATION:
                logger.warning(f"Dropping stale visualization for session {session_id} (actor {actor_id})")
                return
            if failure is not None or not handle:
                session.state = SessionState.WITHOUT_VISUALIZATION
                logger.warning(f"Visualization failed for session {session_id}, continuing without badge: {failure}")
                return
            session.visualization_url = handle
            session.state = SessionState.WITH_VISUALIZATION
        logger.info(f"Visualization ready for session {session_id}")

    def discard(self, actor_id: str) -> AnalysisSession:
        with self._lock:
            session = self._sessions.pop(actor_id, None)
            if session is None:
                raise NoActiveSessionError(actor_id)
            session.release()
            session.state = SessionState.IDLE
        logger.info(f"Session {session.session_id} discarded by {actor_id}")
        return session

    def commit(self, actor_id: str, persist: Optional[Callable[[LogEntry], object]] = None) -> LogEntry:
        """
        Turns the analyzed session into a LogEntry and hands it to `persist`.
        The session is detached from the table while `persist` runs, outside
        the lock. If `persist` raises, the session is put back so the user can
        retry. A pending visualization is not waited for; the entry is saved
        without it.
        """
        with self._lock:
            session = self._sessions.get(actor_id)
            if session is None:
                raise NoActiveSessionError(actor_id)
            if session.state not in ANALYZED_STATES or session.result is None:
                raise SessionNotReadyError(f"Session {session.session_id} is {session.state.value}, nothing to commit")

            entry = new_log_entry(session.result, session.media.media_type,
                                  visualization_url=session.visualization_url, date=self.clock())
            del self._sessions[actor_id]

        if persist is not None:
            try:
                persist(entry)
            except Exception:
                with self._lock:
                    # A visualization finishing while detached was dropped.
                    if session.state == SessionState.AWAITING_VISUALIZATION:
                        session.state = SessionState.WITHOUT_VISUALIZATION
                    self._sessions.setdefault(actor_id, session)
                logger.error(f"Persisting session {session.session_id} failed, session kept for retry", exc_info=True)
                raise

        with self._lock:
            session.release()
            session.state = SessionState.IDLE
        logger.info(f"Session {session.session_id} committed as log {entry.id} (+{entry.pointsEarned} pts)")
        return entry

    def close(self):
        self.executor.shutdown(wait=False)
