"""
Request-time access to the services wired by main.create_app.
Blueprints import these accessors instead of module-level clients.
"""
from flask import current_app

EXTENSION_KEY = 'greenmirror'


def _services():
    return current_app.extensions[EXTENSION_KEY]


def profiles():
    return _services()['profiles']


def sessions():
    return _services()['sessions']


def comparison_source():
    return _services()['comparison_source']


def redis_client():
    return _services()['redis']
