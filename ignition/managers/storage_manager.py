"""
Storage manager for Ignition.

Handles loading and saving of all JSON files in the .ignition/ directory.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ignition.constants import IGNITION_DIR_NAME
from ignition.exceptions import StorageError
from ignition.models.files import ConfigFile, StateFile
from ignition.models.project import ProjectData


class StorageManager:
    """
    Manages persistence of the local working copy in the .ignition/ directory.

    Handles atomic writes to prevent data corruption.
    """

    def __init__(self, ignition_dir: Optional[Path] = None) -> None:
        """
        Initialize the StorageManager with a .ignition/ directory path.

        Args:
            ignition_dir: Path to the .ignition/ directory. Defaults to .ignition/ in current directory.
        """
        self.ignition_dir = Path(ignition_dir) if ignition_dir else Path(IGNITION_DIR_NAME)
        self.ignition_dir.mkdir(parents=True, exist_ok=True)

    @property
    def project_path(self) -> Path:
        return self.ignition_dir / "project.json"

    @property
    def config_path(self) -> Path:
        return self.ignition_dir / "config.json"

    @property
    def state_path(self) -> Path:
        return self.ignition_dir / "state.json"

    def is_initialized(self) -> bool:
        """Return True once ``ignition init`` has written config.json."""
        return self.config_path.exists()

    def _atomic_write(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Write data to a JSON file atomically to prevent corruption.

        Args:
            file_path: Path to the file to write.
            data: Dictionary data to write as JSON.

        Raises:
            StorageError: If writing to file fails.
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.ignition_dir, prefix=".tmp_ignition_", suffix=".json"
        )

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_file:
                json.dump(data, temp_file, indent=2)
            os.replace(temp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise StorageError(f"Failed to write to {file_path}: {e}")

    def _read_json(self, file_path: Path) -> Any:
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to load {file_path.name}: {e}")

    # =========================================================================
    # Project File
    # =========================================================================

    def load_project(self) -> ProjectData:
        """Load project.json and return as ProjectData model."""
        if not self.project_path.exists():
            return ProjectData()

        data = self._read_json(self.project_path)
        try:
            return ProjectData.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load project.json: {e}")

    def save_project(self, data: ProjectData) -> None:
        """Save ProjectData model to project.json."""
        self._atomic_write(self.project_path, data.to_dict())

    # =========================================================================
    # Config File
    # =========================================================================

    def load_config(self) -> ConfigFile:
        """Load config.json and return as ConfigFile model."""
        if not self.config_path.exists():
            return ConfigFile()

        data = self._read_json(self.config_path)
        try:
            return ConfigFile.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load config.json: {e}")

    def save_config(self, data: ConfigFile) -> None:
        """Save ConfigFile model to config.json."""
        self._atomic_write(self.config_path, data.model_dump(mode="json"))

    # =========================================================================
    # State File
    # =========================================================================

    def load_state(self) -> StateFile:
        """Load state.json and return as StateFile model."""
        if not self.state_path.exists():
            return StateFile()

        data = self._read_json(self.state_path)
        try:
            return StateFile.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Failed to load state.json: {e}")

    def save_state(self, data: StateFile) -> None:
        """Save StateFile model to state.json."""
        self._atomic_write(self.state_path, data.model_dump(mode="json"))

    # =========================================================================
    # Export / Import
    # =========================================================================

    def export_project(self, data: ProjectData, destination: Path) -> Path:
        """Write a pretty-printed copy of the project to an arbitrary path."""
        destination = Path(destination)
        try:
            destination.write_text(data.to_json(), encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to export project to {destination}: {e}")
        return destination

    def import_project(self, source: Path) -> ProjectData:
        """Read and validate a project file from an arbitrary path.

        Raises:
            StorageError: If the file cannot be read.
            ValidationError: If the file is not valid project data.
        """
        source = Path(source)
        try:
            text = source.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Failed to read {source}: {e}")
        return ProjectData.from_json(text)
