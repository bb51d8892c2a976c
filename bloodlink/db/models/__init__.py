# bloodlink/db/models/__init__.py
from .db_base_model import *
from .user_table import *
from .appointment_table import *
from .donation_table import *
