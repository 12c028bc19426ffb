# route_store.py
# File-backed route persistence.
# One JSON file per route, named after the route id.

import json
import logging
import os
from datetime import datetime
from typing import List, Optional

from .errors import DriveError, Result, failure, success
from .models import Route, RouteSummary
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class RouteStore:
    """
    Saves, loads, deletes and lists routes under NavConfig.routes_dir.

    Args:
        config: NavConfig instance for the routes directory.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()

    @property
    def routes_dir(self) -> str:
        return self.config.routes_dir

    def prepare(self) -> Result:
        """Create the routes directory if needed. Safe to call repeatedly."""
        try:
            os.makedirs(self.routes_dir, exist_ok=True)
            return success()
        except OSError as e:
            logger.error(f"Failed to create routes directory {self.routes_dir}: {e}")
            return failure(DriveError.save_failed("Failed to create routes directory", e))

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save(self, route: Route) -> Result:
        """
        Serialize a route to <routes_dir>/<id>.json.

        Returns:
            Result carrying the route id.
        """
        if not route.waypoints or len(route.waypoints) < 2:
            return failure(DriveError.invalid_route("Route must have at least 2 waypoints"))

        filepath = self.config.route_filepath(route.id)
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(route.to_dict(), f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved: {route.id} ({route.destination})")
            return success(route.id)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save route to {filepath}: {e}")
            return failure(DriveError.save_failed(str(e), e, route_id=route.id))

    def load(self, route_id: str) -> Result:
        """
        Load a previously saved route.

        Returns:
            Result carrying the Route, RouteNotFound if no such file exists.
        """
        filepath = self.config.route_filepath(route_id)
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = Route.from_dict(data)
            logger.info(f"Route loaded: {route_id}")
            return success(route)
        except FileNotFoundError:
            return failure(DriveError.route_not_found(route_id))
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load route from {filepath}: {e}")
            return failure(DriveError.load_failed(route_id, e))

    def delete(self, route_id: str) -> Result:
        filepath = self.config.route_filepath(route_id)
        try:
            os.remove(filepath)
            logger.info(f"Route deleted: {route_id}")
            return success()
        except FileNotFoundError:
            return failure(DriveError.route_not_found(route_id))
        except OSError as e:
            logger.error(f"Failed to delete route {route_id}: {e}")
            return failure(DriveError.delete_failed(route_id, e))

    def list(self) -> Result:
        """
        Summaries of every stored route, newest first.

        Files that cannot be parsed are skipped with a warning.
        """
        try:
            filenames = os.listdir(self.routes_dir)
        except OSError as e:
            logger.error(f"Failed to list routes in {self.routes_dir}: {e}")
            return failure(DriveError.load_failed("list", e))

        routes: List[RouteSummary] = []
        for filename in filenames:
            if not filename.endswith(".json"):
                continue
            try:
                with open(os.path.join(self.routes_dir, filename), "r", encoding="utf-8") as f:
                    data = json.load(f)
                routes.append(RouteSummary(
                    id=data["id"],
                    destination=data["destination"],
                    created_at=datetime.fromisoformat(data["created_at"]),
                ))
            except (OSError, KeyError, TypeError, ValueError):
                logger.warning(f"Failed to parse route file: {filename}")

        routes.sort(key=lambda r: r.created_at, reverse=True)
        return success(routes)
