from .filter_controller import FilterController

__all__ = ['FilterController']
