# app/api/dependencies/engine.py
from fastapi import Request

from app.services.schedule_engine import ScheduleEngine


def get_schedule_engine(request: Request) -> ScheduleEngine:
    """
    FastAPI dependency returning the engine owned by this application.
    """
    return request.app.state.schedule_engine
