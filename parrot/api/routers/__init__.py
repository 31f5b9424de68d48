"""
API Routers Package
Exposes all route modules for the Parrot service
"""

from . import markov_router
from . import users_router
from . import reload_router

__all__ = [
    "markov_router",
    "users_router",
    "reload_router",
]
