"""
Application package initializer.

The application is organised into layers: ``core`` (configuration,
logging, security, errors, database and the request pipeline),
``repositories`` (typed storage access), ``services`` (business logic),
``realtime`` (the notification hub), ``schemas`` (API models) and
``api`` (versioned routers).
"""

from .main import app  # noqa: F401
