"""Project, token and configuration models.

Persisted keys use camelCase aliases (``maxArgs``, ``whitelistedNetwork``...),
Python code uses the snake_case attribute names.
"""

from collections.abc import Iterable
import hmac
from ipaddress import IPv4Network, IPv6Network
import uuid as uuid_lib

from pydantic import BaseModel, ConfigDict, Field, model_validator

from deploy_agent.errors import (
    InvalidConfigurationError,
    InvalidUUIDError,
    ProjectNotFoundError,
)
from deploy_agent.logging_config import get_logger
from deploy_agent.security import (
    compute_verification_hash,
    generate_token,
    network_contains,
    parse_network,
)

logger = get_logger(__name__)

DEFAULT_NETWORK = "0.0.0.0/0"


class TokenDetail(BaseModel):
    """A token authorized for one source network."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    whitelisted_network: str = Field(..., alias="whitelistedNetwork")
    token: str


class NetworkHash(BaseModel):
    """Verification hash to hand out for one network."""

    model_config = ConfigDict(frozen=True)

    network: str
    hash: str


def build_tokens(cidrs: Iterable[str]) -> list[TokenDetail]:
    """Create one freshly generated token per network."""
    return [TokenDetail(whitelisted_network=cidr, token=generate_token()) for cidr in cidrs]


def regenerate_tokens(tokens: list[TokenDetail]) -> None:
    """Replace every token value in place, keeping its network."""
    for detail in tokens:
        detail.token = generate_token()


class Project(BaseModel):
    """A webhook project with its per-network tokens and hooks."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    uuid: str
    name: str = ""
    secret: str = ""
    max_args: int = Field(default=0, alias="maxArgs")
    hooks: list[str] = Field(default_factory=list)
    pre_hook: str = Field(default="", alias="preHook")
    post_hook: str = Field(default="", alias="postHook")
    error_hook: str = Field(default="", alias="errorHook")
    work_dir: str = Field(default="", alias="workDir")
    tokens: list[TokenDetail] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        name: str,
        cidrs: Iterable[str] = (),
        *,
        max_args: int = 0,
        hooks: Iterable[str] = (),
        pre_hook: str = "",
        post_hook: str = "",
        error_hook: str = "",
        work_dir: str = "",
    ) -> "Project":
        """Build a new project with a fresh UUID, secret and token per network."""
        cidrs = list(cidrs) or [DEFAULT_NETWORK]
        return cls(
            uuid=str(uuid_lib.uuid4()),
            name=name,
            secret=generate_token(),
            max_args=max_args,
            hooks=list(hooks),
            pre_hook=pre_hook,
            post_hook=post_hook,
            error_hook=error_hook,
            work_dir=work_dir,
            tokens=build_tokens(cidrs),
        )

    def validate_configuration(self) -> None:
        """Check the fields required before a project may be persisted.

        Raises:
            InvalidConfigurationError: On the first failing field.
        """
        if not self.uuid:
            raise InvalidConfigurationError("uuid", "must not be empty")
        if not self.name.strip():
            raise InvalidConfigurationError("name", "must not be empty")
        if not self.secret:
            raise InvalidConfigurationError("secret", "must not be empty")
        if self.max_args < 0:
            raise InvalidConfigurationError("maxArgs", f"must be non-negative, got {self.max_args}")
        if not self.tokens:
            raise InvalidConfigurationError("tokens", "at least one network is required")

        seen: set[IPv4Network | IPv6Network] = set()
        for index, detail in enumerate(self.tokens):
            field = f"tokens[{index}].whitelistedNetwork"
            try:
                network = parse_network(detail.whitelisted_network)
            except ValueError as e:
                raise InvalidConfigurationError(
                    field, f"not a valid CIDR: {detail.whitelisted_network!r}"
                ) from e
            # 10.0.0.0/8 and 10.9.9.9/8 are the same network
            if network in seen:
                raise InvalidConfigurationError(
                    field, f"duplicate network {detail.whitelisted_network} ({network})"
                )
            seen.add(network)
            if not detail.token:
                raise InvalidConfigurationError(f"tokens[{index}].token", "must not be empty")

    def verification_hash(self, index: int) -> str:
        """Hash a caller must present for the token at ``index``."""
        return compute_verification_hash(self.name, self.secret, self.tokens[index].token)

    def network_hashes(self) -> list[NetworkHash]:
        return [
            NetworkHash(network=detail.whitelisted_network, hash=self.verification_hash(index))
            for index, detail in enumerate(self.tokens)
        ]

    def authorize(
        self, client_ip: str, presented_hash: str, *, scan_all_networks: bool = False
    ) -> bool:
        """Decide whether a caller at ``client_ip`` presenting ``presented_hash`` is allowed.

        By default only the first token whose network contains ``client_ip`` is
        checked, so a valid hash for a later overlapping network is denied.
        With ``scan_all_networks`` every matching network is tried.
        """
        matched_network = None
        allowed = False
        for index, detail in enumerate(self.tokens):
            if not network_contains(detail.whitelisted_network, client_ip):
                continue
            matched_network = detail.whitelisted_network
            allowed = hmac.compare_digest(
                presented_hash.encode("utf-8"), self.verification_hash(index).encode("utf-8")
            )
            if allowed or not scan_all_networks:
                break

        logger.debug(
            "authorization_checked",
            project_uuid=self.uuid,
            client_ip=client_ip,
            network=matched_network,
            allowed=allowed,
        )
        return allowed

    def regenerate_all(self) -> list[NetworkHash]:
        """Replace every token and return the new hash for each network."""
        regenerate_tokens(self.tokens)
        return self.network_hashes()


class Configuration(BaseModel):
    """Top-level persisted document: every known project."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    projects: list[Project] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_uuids(self) -> "Configuration":
        seen: set[str] = set()
        for project in self.projects:
            if project.uuid in seen:
                raise ValueError(f"duplicate project uuid {project.uuid}")
            seen.add(project.uuid)
        return self

    def find_by_uuid(self, uuid: str) -> Project:
        """Return the project with ``uuid``.

        Raises:
            InvalidUUIDError: If ``uuid`` is empty.
            ProjectNotFoundError: If no project matches.
        """
        if not uuid or not uuid.strip():
            raise InvalidUUIDError(uuid)
        for project in self.projects:
            if project.uuid == uuid:
                return project
        raise ProjectNotFoundError(uuid)

    def add_project(self, project: Project) -> None:
        if any(existing.uuid == project.uuid for existing in self.projects):
            raise InvalidConfigurationError("uuid", f"project {project.uuid} already exists")
        self.projects.append(project)

    def replace_project(self, project: Project) -> None:
        for index, existing in enumerate(self.projects):
            if existing.uuid == project.uuid:
                self.projects[index] = project
                return
        raise ProjectNotFoundError(project.uuid)

    def remove_project(self, uuid: str) -> Project:
        project = self.find_by_uuid(uuid)
        self.projects.remove(project)
        return project

    def to_document(self) -> dict:
        """Serialize using the persisted (camelCase) key names."""
        return self.model_dump(mode="json", by_alias=True)
