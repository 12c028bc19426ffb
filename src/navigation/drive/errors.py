# errors.py
# Error values returned by the engine and the route store.
# Expected failures travel as Result objects; nothing here is raised.

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class DriveErrorCode(Enum):
    SERVICE_NOT_INITIALIZED   = "DRIVE_SERVICE_NOT_INITIALIZED"
    ROUTE_INVALID             = "DRIVE_ROUTE_INVALID"
    NAVIGATION_ALREADY_ACTIVE = "DRIVE_NAVIGATION_ALREADY_ACTIVE"
    ROUTE_NOT_FOUND           = "DRIVE_ROUTE_NOT_FOUND"
    ROUTE_SAVE_FAILED         = "DRIVE_ROUTE_SAVE_FAILED"
    ROUTE_LOAD_FAILED         = "DRIVE_ROUTE_LOAD_FAILED"
    ROUTE_DELETE_FAILED       = "DRIVE_ROUTE_DELETE_FAILED"


_USER_MESSAGES: Dict[DriveErrorCode, str] = {
    DriveErrorCode.SERVICE_NOT_INITIALIZED:   "Navigation is starting up. Please try again.",
    DriveErrorCode.ROUTE_INVALID:             "Invalid route data. Please calculate a new route.",
    DriveErrorCode.NAVIGATION_ALREADY_ACTIVE: "Navigation is already running. Stop it first.",
    DriveErrorCode.ROUTE_NOT_FOUND:           "Route not found. Please calculate a new route.",
}


@dataclass(frozen=True)
class DriveError:
    """
    A recoverable navigation failure.

    Args:
        code:        Which kind of failure this is.
        message:     Developer-facing description.
        recoverable: Whether retrying the same call can succeed.
        context:     Operation details (route id, underlying error, ...).
    """
    code: DriveErrorCode
    message: str
    recoverable: bool = False
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES.get(self.code, "Navigation error occurred. Please try again.")

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @staticmethod
    def service_not_initialized() -> "DriveError":
        return DriveError(
            DriveErrorCode.SERVICE_NOT_INITIALIZED,
            "Drive navigation service not initialized",
        )

    @staticmethod
    def invalid_route(reason: str) -> "DriveError":
        return DriveError(
            DriveErrorCode.ROUTE_INVALID,
            f"Invalid route: {reason}",
            context={"reason": reason},
        )

    @staticmethod
    def navigation_already_active() -> "DriveError":
        return DriveError(
            DriveErrorCode.NAVIGATION_ALREADY_ACTIVE,
            "Navigation is already active. Stop current navigation first.",
            recoverable=True,
        )

    @staticmethod
    def route_not_found(route_id: str) -> "DriveError":
        return DriveError(
            DriveErrorCode.ROUTE_NOT_FOUND,
            f"Route not found: {route_id}",
            context={"route_id": route_id},
        )

    @staticmethod
    def save_failed(reason: str, error: Optional[BaseException] = None,
                    route_id: Optional[str] = None) -> "DriveError":
        return DriveError(
            DriveErrorCode.ROUTE_SAVE_FAILED,
            f"Failed to save route: {reason}",
            recoverable=True,
            context={"operation": "save", "route_id": route_id,
                     "original_error": str(error) if error else None},
        )

    @staticmethod
    def load_failed(route_id: str, error: Optional[BaseException] = None) -> "DriveError":
        return DriveError(
            DriveErrorCode.ROUTE_LOAD_FAILED,
            f"Failed to load route {route_id}: {error or 'unknown error'}",
            recoverable=True,
            context={"operation": "load", "route_id": route_id,
                     "original_error": str(error) if error else None},
        )

    @staticmethod
    def delete_failed(route_id: str, error: Optional[BaseException] = None) -> "DriveError":
        return DriveError(
            DriveErrorCode.ROUTE_DELETE_FAILED,
            f"Failed to delete route {route_id}: {error or 'unknown error'}",
            recoverable=True,
            context={"operation": "delete", "route_id": route_id,
                     "original_error": str(error) if error else None},
        )


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of an engine or store operation."""
    value: Optional[T] = None
    error: Optional[DriveError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def success(value: Optional[T] = None) -> Result:
    return Result(value=value)


def failure(error: DriveError) -> Result:
    return Result(error=error)
