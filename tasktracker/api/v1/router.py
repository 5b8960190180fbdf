from fastapi import APIRouter

# Import the root routers to expose them under /api/v1 as well
from ...routers import auth as auth_router
from ...routers import live as live_router
from ...routers import tasks as tasks_router


api_router = APIRouter(prefix="/api/v1")

# Same endpoints under a versioned namespace: /api/v1/tasks, /api/v1/login, /api/v1/ws ...
api_router.include_router(tasks_router.router)
api_router.include_router(auth_router.router)
api_router.include_router(live_router.router)


@api_router.get("/", tags=["auth"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "Task Tracker API",
        "version": "v1",
        "docs": "/docs",
        "auth": {
            "register": "/api/v1/register",
            "login": "/api/v1/login",
        },
        "tasks": "/api/v1/tasks",
        "live": "/api/v1/ws",
    }
