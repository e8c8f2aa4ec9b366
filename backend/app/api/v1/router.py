from fastapi import APIRouter
from app.api.v1.endpoints import auth, invites, memberships, societies, core, head, recruitment, admin, health

api_router = APIRouter()

# Deep health checks (/health/live, /health/ready, /health/deep)
api_router.include_router(health.router)


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple health check endpoint for load balancer"""
    return {"status": "healthy", "service": "societysync-backend"}


api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(invites.router, prefix="/invites", tags=["Invites"])
api_router.include_router(memberships.router, prefix="/memberships", tags=["Memberships"])
api_router.include_router(societies.router, prefix="/societies", tags=["Societies"])
api_router.include_router(core.router, prefix="/core", tags=["Core Team"])
api_router.include_router(head.router, prefix="/head", tags=["Department Heads"])
api_router.include_router(recruitment.router, prefix="/recruitment", tags=["Recruitment"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])
