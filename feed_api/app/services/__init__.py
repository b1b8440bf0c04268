"""
Service layer.

Each service encapsulates business logic for a domain and receives its
repositories and collaborators through its constructor.  The instances
used by the HTTP layer are built once in ``main.create_app`` and kept
on ``app.state``; see ``api.deps`` for how endpoints reach them.
"""
