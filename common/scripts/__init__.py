# common/scripts/__init__.py
from .get_date_range import get_week_date_range
from .get_project_root import get_project_root

__all__ = ["get_week_date_range", "get_project_root"]
