"""Project lifecycle operations on top of the configuration store.

Each write operation runs as one read-modify-write inside the store's
transaction: either the whole updated configuration is saved or nothing is.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from deploy_agent.errors import InvalidUUIDError
from deploy_agent.logging_config import get_logger
from deploy_agent.models import DEFAULT_NETWORK, NetworkHash, Project
from deploy_agent.store import ConfigurationStore

logger = get_logger(__name__)


class AddProjectRequest(BaseModel):
    """Validated input of the add operation."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Project name")
    max_args: int = Field(
        default=0, ge=0, description="Maximum arguments passed to each hook"
    )
    hooks: tuple[str, ...] = Field(default=(), description="Scripts run on webhook call")
    pre_hook: str = Field(default="", description="Script run before the event")
    post_hook: str = Field(default="", description="Script run after the event")
    error_hook: str = Field(default="", description="Script run in case of error")
    work_dir: str = Field(default="", description="Working directory for hooks")
    cidrs: tuple[str, ...] = Field(
        default=(DEFAULT_NETWORK,),
        description="Networks allowed to call the webhook",
    )

    @field_validator("hooks", mode="before")
    @classmethod
    def default_hooks(cls, v):
        return () if v is None else v

    @field_validator("cidrs", mode="before")
    @classmethod
    def default_cidrs(cls, v):
        # No network given means any source address
        return (DEFAULT_NETWORK,) if not v else v


def add_project(store: ConfigurationStore, request: AddProjectRequest) -> Project:
    """Create a project from ``request`` and persist it.

    Raises:
        InvalidConfigurationError: If the built project fails validation.
    """
    project = Project.create(
        request.name,
        request.cidrs,
        max_args=request.max_args,
        hooks=request.hooks,
        pre_hook=request.pre_hook,
        post_hook=request.post_hook,
        error_hook=request.error_hook,
        work_dir=request.work_dir,
    )
    project.validate_configuration()

    with store.transaction():
        configuration = store.load_or_empty()
        configuration.add_project(project)
        store.save(configuration, overwrite=True)

    logger.info(
        "project_added",
        project_uuid=project.uuid,
        name=project.name,
        networks=[detail.whitelisted_network for detail in project.tokens],
    )
    return project


def regenerate(store: ConfigurationStore, uuid: str) -> list[NetworkHash]:
    """Replace every token of a project and return the new hashes.

    Raises:
        InvalidUUIDError: If ``uuid`` is empty.
        ProjectNotFoundError: If no project has ``uuid``.
    """
    if not uuid or not uuid.strip():
        raise InvalidUUIDError(uuid)

    with store.transaction():
        configuration = store.load()
        project = configuration.find_by_uuid(uuid)
        hashes = project.regenerate_all()
        store.save(configuration, overwrite=True)

    logger.info("tokens_regenerated", project_uuid=uuid, networks=len(hashes))
    return hashes


def remove_project(store: ConfigurationStore, uuid: str) -> Project:
    """Delete a project from the configuration and return it."""
    if not uuid or not uuid.strip():
        raise InvalidUUIDError(uuid)

    with store.transaction():
        configuration = store.load()
        project = configuration.remove_project(uuid)
        store.save(configuration, overwrite=True)

    logger.info("project_removed", project_uuid=uuid, name=project.name)
    return project


def list_projects(store: ConfigurationStore) -> list[Project]:
    return store.load_or_empty().projects


def verify(
    store: ConfigurationStore,
    uuid: str,
    client_ip: str,
    presented_hash: str,
    *,
    scan_all_networks: bool = False,
) -> bool:
    """Authorize a webhook call for the project with ``uuid``."""
    project = store.find_by_uuid(uuid)
    return project.authorize(client_ip, presented_hash, scan_all_networks=scan_all_networks)
