from .app import create_app
from .reports import build_inventory_workbook, query_frame

__all__ = ["create_app", "build_inventory_workbook", "query_frame"]
