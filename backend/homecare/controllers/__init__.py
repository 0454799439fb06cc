# Controllers package initialization
# This file makes the controllers directory a Python package
# and allows importing controller modules

from . import calendar_controller

__all__ = [
    "calendar_controller",
]
