from .screen_specs import ACCOUNTS_SCREEN, RESERVATIONS_SCREEN, SCREENS, LOCATION_LEVELS, get_screen
from .locations_editor import LocationsEditor, LocationRow

__all__ = [
    'ACCOUNTS_SCREEN',
    'RESERVATIONS_SCREEN',
    'SCREENS',
    'LOCATION_LEVELS',
    'get_screen',
    'LocationsEditor',
    'LocationRow',
]
