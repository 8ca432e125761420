# cascade_filters/dashboard/pages/__init__.py
"""
Dashboard pages module
"""

from . import accounts
from . import reservations
from . import locations

__all__ = ['accounts', 'reservations', 'locations']
