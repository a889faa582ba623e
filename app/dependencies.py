"""
FastAPI dependencies — hand the app-owned store and simulator to routers.
Both are created at startup (app/main.py) and live on app.state; tests swap
them through app.dependency_overrides.
"""

from fastapi import Request

from app.services.occupancy_store import OccupancyStore
from app.services.simulation_service import SimulationController


def get_store(request: Request) -> OccupancyStore:
    return request.app.state.store


def get_simulation(request: Request) -> SimulationController:
    return request.app.state.simulation
