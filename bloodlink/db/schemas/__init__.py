# bloodlink/db/schemas/__init__.py
from .appointment_schemas import *
from .availability_schemas import *
from .user_schemas import *
from .donation_schemas import *
