# nav_logger.py
# Appends navigation updates to a JSON-lines session file.
# Attach with engine.on_navigation_update(nav_logger.log_update).

import json
import logging
import os
from typing import Optional

from .models import NavigationUpdate
from .nav_config import NavConfig

logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists navigation events for later inspection.

    Args:
        config: NavConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[NavConfig] = None) -> None:
        self.config = config or NavConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    @property
    def filepath(self) -> str:
        return self.config.session_filepath

    def log_update(self, update: NavigationUpdate) -> None:
        """
        Append a single navigation update to the session log.

        Args:
            update: NavigationUpdate as delivered by the engine.
        """
        status = update.status
        entry = {
            "timestamp": update.timestamp.isoformat(),
            "type": update.type.value,
            "state": status.state.value,
            "display_mode": status.display_mode.value,
            "route_id": status.route.id if status.route else None,
            "waypoint_index": status.current_waypoint_index,
            "distance_to_next_turn": round(status.distance_to_next_turn, 1),
            "distance_remaining": round(status.distance_remaining, 1),
            "time_remaining": status.time_remaining,
            "progress": status.progress,
        }
        if status.distance_to_route is not None:
            entry["distance_to_route"] = round(status.distance_to_route, 1)
            entry["bearing_to_route"] = round(status.bearing_to_route, 1)

        try:
            with open(self.filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to write event log: {e}")
