# PLAYHUB - Playlist Sharing Platform
"""
PLAYHUB: playlist-sharing web service.

Users create, browse, like and favorite playlists of songs hosted on
external platforms. Every mutation passes through the access layer:

    - Role model and authorization gate (playhub.api.access.rbac / gate)
    - Server-side sessions (playhub.api.auth.sessions)
    - Append-only audit trail (playhub.api.access.audit)

Example:
    from playhub.api.main import create_app

    app = create_app()
"""

__version__ = "1.0.0"
