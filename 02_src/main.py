"""Main entry point for the Portal Chat sandbox backend."""

import asyncio
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from portal_chat.config import ChatSettings
from portal_chat.logging_config import get_logger, setup_logging
from portal_chat.models import Employee
from portal_chat.sandbox import SandboxStorage, create_sandbox_app

logger = get_logger(__name__)

DEMO_ROSTER = [
    Employee(id="1", first_name="Anna", last_name="Kowalski", status="ACTIVE"),
    Employee(id="2", first_name="Ben", last_name="Ortiz", status="APPROVED"),
    Employee(id="3", first_name="Chloe", last_name="Nguyen", status="ACTIVE"),
    Employee(id="4", first_name="", last_name="Baker", status="ACTIVE"),
    Employee(id="5", first_name="Dmitri", last_name="Volkov", status="PENDING"),
]


async def seed_roster(db_path: str | None) -> None:
    """Insert the demo roster if it is not there yet."""
    storage = SandboxStorage(db_path)
    await storage.init()
    try:
        existing = {e["id"] for e in await storage.list_employees()}
        for employee in DEMO_ROSTER:
            if employee.id not in existing:
                await storage.save_employee(employee)
        logger.info(f"Roster seeded ({len(DEMO_ROSTER)} demo employees)")
    finally:
        await storage.close()


def main():
    """Run the sandbox backend."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging(ChatSettings.from_env())

    # Get configuration from environment
    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))
    db_path = os.getenv("DATABASE_URL")

    asyncio.run(seed_roster(db_path))

    app = create_sandbox_app(SandboxStorage(db_path))

    # Run with uvicorn
    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
