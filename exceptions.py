"""
Error taxonomy for GreenMirror.
Every error here leaves profile state consistent; the HTTP layer decides how to present it.
"""


class GreenMirrorError(Exception):
    """Base class for all domain errors."""


# --- Remote collaborators ---

class AnalysisError(GreenMirrorError):
    """The impact analysis call failed (network, quota, parse) or returned an unusable result."""


class AnalysisContractError(AnalysisError):
    """The analysis engine answered, but the payload violates the result contract."""

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details or []


class VisualizationError(GreenMirrorError):
    """The image generation call failed. Never fatal to a session."""


# --- Session lifecycle ---

class SessionError(GreenMirrorError):
    pass


class SessionBusyError(SessionError):
    def __init__(self, actor_id, state):
        super().__init__(f"Actor {actor_id} already has a session in state {state}")
        self.actor_id = actor_id
        self.state = state


class NoActiveSessionError(SessionError):
    def __init__(self, actor_id):
        super().__init__(f"Actor {actor_id} has no active session")
        self.actor_id = actor_id


class SessionNotReadyError(SessionError):
    """Commit was requested before an analysis result exists."""


# --- Profiles ---

class ProfileStoreError(GreenMirrorError):
    """The durable profile record could not be read or written."""


class UnknownActorError(GreenMirrorError):
    def __init__(self, actor_id):
        super().__init__(f"No profile found for actor {actor_id}")
        self.actor_id = actor_id
