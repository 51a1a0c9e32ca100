"""
routers/ — FastAPI route modules.

Each file contains a thin APIRouter. Business rules and ownership
checks live in services/. Routers parse input, call one service,
and translate its ServiceResult into a response.
"""
