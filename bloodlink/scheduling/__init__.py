# bloodlink/scheduling/__init__.py
"""
Scheduling core: slot generation, overlap checks, eligibility and the
appointment status machine. Pure Python, no storage access.
"""

from .errors import *
from .policy import *
from .time_slot import *
from .operating_hours import *
from .availability import *
from .lifecycle import *
from .eligibility import *
