"""
Configuration report and readiness check.

Reports what the process is configured with while never revealing secrets:
the database password and signing secret show up only as ``hasPassword`` and
``hasSecret`` flags. The router is mounted outside production only.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from storefront.settings import Settings

MIN_PRODUCTION_SECRET_LENGTH = 32
WEAK_SECRET_MARKERS = ("default", "change")


def secret_problems(secret: str, *, production: bool) -> list[str]:
    """Describe what is wrong with a signing secret; empty when it is usable."""
    problems: list[str] = []
    if not secret or secret == "default-secret-change-in-production":
        problems.append("JWT secret not properly configured")
    if production and (
        len(secret) < MIN_PRODUCTION_SECRET_LENGTH
        or any(marker in secret.lower() for marker in WEAK_SECRET_MARKERS)
    ):
        problems.append("JWT secret is not secure enough for production")
    return problems


class EnvironmentService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def server_config(self) -> dict[str, Any]:
        return {
            "host": self.settings.host,
            "port": self.settings.port,
            "environment": self.settings.environment.value,
            "version": self.settings.app_version,
            "isProduction": self.settings.is_production,
            "isDevelopment": self.settings.is_development,
        }

    def database_config(self) -> dict[str, Any]:
        database = self.settings.database
        return {
            "host": database.host,
            "port": database.port,
            "database": database.database,
            "user": database.username,
            "hasUrl": bool(database.url),
            "hasPassword": bool(database.password),
        }

    def jwt_config(self) -> dict[str, Any]:
        jwt = self.settings.jwt
        return {
            "algorithm": jwt.algorithm,
            "expiresInMinutes": jwt.access_token_expire_minutes,
            "hasSecret": bool(jwt.secret_key),
        }

    def readiness(self) -> dict[str, Any]:
        """``{ready, errors}``; a full database URL stands in for host and password."""
        errors: list[str] = []
        database = self.settings.database
        if not database.url:
            if not database.host:
                errors.append("Database host not configured")
            if not database.password:
                errors.append("Database password not configured")

        errors.extend(
            secret_problems(self.settings.jwt.secret_key, production=self.settings.is_production)
        )
        return {"ready": not errors, "errors": errors}

    def all_config(self) -> dict[str, Any]:
        return {
            "server": self.server_config(),
            "database": self.database_config(),
            "jwt": self.jwt_config(),
            "readiness": self.readiness(),
        }


# ============================================================
# Router
# ============================================================

environment_router = APIRouter(prefix="/api/env", tags=["Environment"])


def get_environment_service(request: Request) -> EnvironmentService:
    return EnvironmentService(request.app.state.settings)


@environment_router.get("/config")
async def get_config(
    service: EnvironmentService = Depends(get_environment_service),
) -> dict[str, Any]:
    return {"success": True, "data": service.all_config()}


@environment_router.get("/health")
async def get_readiness(
    service: EnvironmentService = Depends(get_environment_service),
) -> JSONResponse:
    """Configuration readiness; 503 while anything required is missing."""
    readiness = service.readiness()
    status_code = status.HTTP_200_OK if readiness["ready"] else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(
        status_code=status_code,
        content={"success": readiness["ready"], **readiness},
    )


@environment_router.get("/server")
async def get_server_config(
    service: EnvironmentService = Depends(get_environment_service),
) -> dict[str, Any]:
    return {"success": True, "data": service.server_config()}


__all__ = [
    "EnvironmentService",
    "environment_router",
    "get_environment_service",
    "secret_problems",
]
