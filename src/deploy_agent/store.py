"""YAML-backed persistence for the project configuration."""

from collections.abc import Iterator
from contextlib import contextmanager
import os
from pathlib import Path
import tempfile
import threading

from pydantic import ValidationError
import yaml

from deploy_agent.errors import (
    ConfigFileExistsError,
    ConfigFileNotFoundError,
    ConfigParseError,
    InvalidUUIDError,
)
from deploy_agent.logging_config import get_logger
from deploy_agent.models import Configuration, Project

logger = get_logger(__name__)

CONFIG_FILE_MODE = 0o600


class ConfigurationStore:
    """Loads and saves one configuration file.

    The store assumes a single writer per file. Within a process, read-modify-write
    sequences must run inside ``transaction()`` so they are serialized with each
    other and with plain loads.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Configuration:
        """Read and validate the configuration file.

        Raises:
            ConfigFileNotFoundError: If the file does not exist.
            ConfigParseError: If the file is not valid YAML or not a valid configuration.
        """
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError as e:
                raise ConfigFileNotFoundError(self.path) from e

            try:
                document = yaml.safe_load(raw)
            except yaml.YAMLError as e:
                raise ConfigParseError(self.path, str(e)) from e

            if document is None:
                document = {}
            if not isinstance(document, dict):
                raise ConfigParseError(self.path, "root must be a mapping")
            # An explicit `projects:` with no items loads as null
            if document.get("projects") is None:
                document["projects"] = []

            try:
                configuration = Configuration.model_validate(document)
            except ValidationError as e:
                raise ConfigParseError(self.path, str(e)) from e

        logger.debug("config_loaded", path=str(self.path), projects=len(configuration.projects))
        return configuration

    def load_or_empty(self) -> Configuration:
        """Like ``load`` but a missing file yields an empty configuration."""
        try:
            return self.load()
        except ConfigFileNotFoundError:
            return Configuration()

    def save(self, configuration: Configuration, overwrite: bool = False) -> None:
        """Write the whole configuration, replacing the file in one step.

        Raises:
            ConfigFileExistsError: If the file exists and ``overwrite`` is False.
                The existing file is left untouched.
        """
        content = yaml.safe_dump(
            configuration.to_document(),
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )

        with self._lock:
            if self.path.exists() and not overwrite:
                raise ConfigFileExistsError(self.path)

            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                    f.flush()
                    os.fsync(f.fileno())
                os.chmod(tmp_name, CONFIG_FILE_MODE)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise

        logger.info(
            "config_saved",
            path=str(self.path),
            projects=len(configuration.projects),
            overwrite=overwrite,
        )

    def find_by_uuid(self, uuid: str) -> Project:
        """Load the configuration and return the project with ``uuid``.

        Raises:
            InvalidUUIDError: If ``uuid`` is empty (the file is not read).
            ProjectNotFoundError: If no project matches.
        """
        if not uuid or not uuid.strip():
            raise InvalidUUIDError(uuid)
        return self.load().find_by_uuid(uuid)
