from roomieboard.handlers.backup import backup_router
from roomieboard.handlers.basic import basic_router
from roomieboard.handlers.bills import bills_router
from roomieboard.handlers.household import household_router
from roomieboard.handlers.input import input_router

__all__ = ["backup_router", "basic_router", "bills_router", "household_router", "input_router"]
