from fastapi import APIRouter

from edu_gateway.api.routes import generate, tasks

api_router = APIRouter()
api_router.include_router(generate.router)
api_router.include_router(tasks.router)
