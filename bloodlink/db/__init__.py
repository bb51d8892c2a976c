# bloodlink/db/__init__.py
from .models import *
from .schemas import *
from .db_manager import DbManager
from .deps import *
