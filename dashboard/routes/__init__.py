from fastapi import APIRouter

api_router = APIRouter()

# Import route modules here
from dashboard.routes import users, tabs, services

api_router.include_router(services.router)
api_router.include_router(users.router)
api_router.include_router(tabs.router)
