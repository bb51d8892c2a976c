# bloodlink/services/v1/__init__.py
from .booking_locks import *
from .appointment_repository import *
from .user_service import *
from .availability_service import *
from .appointment_service import *
from .donation_service import *
