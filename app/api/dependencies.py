"""
FastAPI dependencies.

Services are built once in the application lifespan and stored on
`app.state`; routes receive them through these getters so tests can swap in
fakes with `app.dependency_overrides`.
"""

from fastapi import Request

from app.services.body_scanner import BodyScanner
from app.services.completion import CompletionClient
from app.services.diet_planner import DietPlanner
from app.services.food_identifier import FoodIdentifier


def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client


def get_diet_planner(request: Request) -> DietPlanner:
    return request.app.state.diet_planner


def get_food_identifier(request: Request) -> FoodIdentifier:
    return request.app.state.food_identifier


def get_scanner(request: Request) -> BodyScanner:
    return request.app.state.scanner
