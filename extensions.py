"""
Rate limiter instance shared by the blueprints.

Created here, bound to the app in create_app(), so blueprints can import
it without a circular dependency on app.py.
"""

from __future__ import annotations

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, default_limits=["200 per hour"])
