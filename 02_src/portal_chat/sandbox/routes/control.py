"""Control API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...models import Employee
from ..storage import SandboxStorage


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class EmployeeRequest(BaseModel):
    """Roster entry to seed."""

    id: str
    first_name: str = ""
    last_name: str = ""
    status: str = "ACTIVE"


def create_control_router(storage: SandboxStorage) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/v1/control", tags=["control"])

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset sandbox data between test runs."""
        try:
            await storage.clear()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/employees", response_model=StatusResponse)
    async def seed_employee(request: EmployeeRequest) -> dict:
        """Add or replace a roster entry."""
        await storage.save_employee(
            Employee(
                id=request.id,
                first_name=request.first_name,
                last_name=request.last_name,
                status=request.status,
            )
        )
        return {"status": "ok"}

    return router
