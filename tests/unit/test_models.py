"""Unit tests for project and configuration models."""

import uuid

import pytest

from deploy_agent.errors import (
    ErrorKind,
    InvalidConfigurationError,
    InvalidUUIDError,
    ProjectNotFoundError,
)
from deploy_agent.models import (
    DEFAULT_NETWORK,
    Configuration,
    Project,
    TokenDetail,
    build_tokens,
    regenerate_tokens,
)
from deploy_agent.security import compute_verification_hash


class TestTokenStore:
    """Tests for token list helpers."""

    def test_build_one_token_per_network(self):
        tokens = build_tokens(["10.0.0.0/8", "192.168.0.0/16"])
        assert [t.whitelisted_network for t in tokens] == ["10.0.0.0/8", "192.168.0.0/16"]
        assert tokens[0].token != tokens[1].token

    def test_regenerate_keeps_networks(self):
        tokens = build_tokens(["10.0.0.0/8", "192.168.0.0/16"])
        old = [t.token for t in tokens]

        regenerate_tokens(tokens)

        assert [t.whitelisted_network for t in tokens] == ["10.0.0.0/8", "192.168.0.0/16"]
        assert all(new != before for new, before in zip([t.token for t in tokens], old))


class TestProjectCreate:
    """Tests for Project.create."""

    def test_fields(self, project):
        assert uuid.UUID(project.uuid)
        assert project.name == "svc-a"
        assert project.secret
        assert project.max_args == 2  # noqa: PLR2004
        assert project.hooks == ["/opt/hooks/deploy.sh"]
        assert project.pre_hook == "/opt/hooks/pre.sh"
        assert project.work_dir == "/srv/svc-a"

    def test_one_token_per_network(self, project):
        assert [t.whitelisted_network for t in project.tokens] == [
            "10.0.0.0/8",
            "192.168.0.0/16",
        ]
        assert project.tokens[0].token != project.tokens[1].token

    def test_default_network(self):
        """Without networks the project accepts any source address."""
        project = Project.create("svc-b")
        assert [t.whitelisted_network for t in project.tokens] == [DEFAULT_NETWORK]

    def test_unique_uuid_and_secret(self):
        first = Project.create("svc-a")
        second = Project.create("svc-a")
        assert first.uuid != second.uuid
        assert first.secret != second.secret


class TestValidateConfiguration:
    """Tests for Project.validate_configuration."""

    def test_valid(self, project):
        project.validate_configuration()

    def test_empty_name(self):
        project = Project.create("   ")
        with pytest.raises(InvalidConfigurationError) as exc_info:
            project.validate_configuration()
        assert exc_info.value.field == "name"
        assert exc_info.value.kind is ErrorKind.INVALID_CONFIGURATION

    def test_negative_max_args(self):
        project = Project.create("svc-a", max_args=-1)
        with pytest.raises(InvalidConfigurationError) as exc_info:
            project.validate_configuration()
        assert exc_info.value.field == "maxArgs"

    def test_malformed_cidr(self):
        project = Project.create("svc-a", ["10.0.0.0/8", "not-a-cidr"])
        with pytest.raises(InvalidConfigurationError) as exc_info:
            project.validate_configuration()
        assert exc_info.value.field == "tokens[1].whitelistedNetwork"

    def test_duplicate_network(self):
        project = Project.create("svc-a", ["10.0.0.0/8", "10.0.0.0/8"])
        with pytest.raises(InvalidConfigurationError, match="duplicate network"):
            project.validate_configuration()

    def test_duplicate_network_with_host_bits(self):
        """Two spellings of the same network count as a duplicate."""
        project = Project.create("svc-a", ["10.0.0.0/8", "10.9.9.9/8"])
        with pytest.raises(InvalidConfigurationError, match="duplicate network") as exc_info:
            project.validate_configuration()
        assert exc_info.value.field == "tokens[1].whitelistedNetwork"

    def test_bare_address(self):
        project = Project.create("svc-a", ["10.0.0.1"])
        with pytest.raises(InvalidConfigurationError, match="not a valid CIDR"):
            project.validate_configuration()

    def test_no_tokens(self, project):
        project.tokens = []
        with pytest.raises(InvalidConfigurationError) as exc_info:
            project.validate_configuration()
        assert exc_info.value.field == "tokens"


class TestAuthorize:
    """Tests for Project.authorize."""

    def test_correct_hash(self, project):
        expected = compute_verification_hash(
            project.name, project.secret, project.tokens[0].token
        )
        assert project.authorize("10.1.1.1", expected)

    def test_wrong_hash(self, project):
        assert not project.authorize("10.1.1.1", "not-the-hash")

    def test_hash_of_other_network(self, project):
        """A hash is only valid from inside its own network."""
        assert not project.authorize("10.1.1.1", project.verification_hash(1))
        assert project.authorize("192.168.4.4", project.verification_hash(1))

    def test_ip_outside_all_networks(self, project):
        assert not project.authorize("172.16.0.1", project.verification_hash(0))

    def test_malformed_ip(self, project):
        assert not project.authorize("not-an-ip", project.verification_hash(0))

    def test_ipv4_mapped_client_address(self, project):
        assert project.authorize("::ffff:10.1.1.1", project.verification_hash(0))

    def test_first_matching_network_only(self):
        """With overlapping networks only the first match is checked."""
        project = Project.create("svc-a", ["10.0.0.0/8", "10.1.0.0/16"])

        assert project.authorize("10.1.1.1", project.verification_hash(0))
        assert not project.authorize("10.1.1.1", project.verification_hash(1))

    def test_scan_all_networks(self):
        project = Project.create("svc-a", ["10.0.0.0/8", "10.1.0.0/16"])

        assert project.authorize("10.1.1.1", project.verification_hash(1), scan_all_networks=True)
        assert not project.authorize("10.1.1.1", "bogus", scan_all_networks=True)

    def test_hash_bound_to_project_name(self, project):
        """Same token and secret under another name does not authorize."""
        forged = compute_verification_hash("svc-b", project.secret, project.tokens[0].token)
        assert not project.authorize("10.1.1.1", forged)


class TestRegenerateAll:
    """Tests for Project.regenerate_all."""

    def test_changes_tokens_and_hashes(self, project):
        old_tokens = [t.token for t in project.tokens]
        old_hashes = [h.hash for h in project.network_hashes()]

        hashes = project.regenerate_all()

        assert all(t.token not in old_tokens for t in project.tokens)
        assert all(h.hash not in old_hashes for h in hashes)

    def test_keeps_identity_and_networks(self, project):
        uuid_before, name_before = project.uuid, project.name

        hashes = project.regenerate_all()

        assert project.uuid == uuid_before
        assert project.name == name_before
        assert [h.network for h in hashes] == ["10.0.0.0/8", "192.168.0.0/16"]
        assert [t.whitelisted_network for t in project.tokens] == [h.network for h in hashes]

    def test_old_hash_no_longer_authorizes(self, project):
        old_hash = project.verification_hash(0)
        new_hashes = project.regenerate_all()

        assert not project.authorize("10.1.1.1", old_hash)
        assert project.authorize("10.1.1.1", new_hashes[0].hash)


class TestConfiguration:
    """Tests for Configuration."""

    def test_find_by_uuid(self, project):
        configuration = Configuration(projects=[Project.create("other"), project])
        assert configuration.find_by_uuid(project.uuid) is project

    def test_find_empty_uuid(self, project):
        configuration = Configuration(projects=[project])
        with pytest.raises(InvalidUUIDError) as exc_info:
            configuration.find_by_uuid("")
        assert exc_info.value.kind is ErrorKind.INVALID_UUID

    def test_find_missing_uuid(self, project):
        configuration = Configuration(projects=[project])
        missing = str(uuid.uuid4())
        with pytest.raises(ProjectNotFoundError) as exc_info:
            configuration.find_by_uuid(missing)
        assert exc_info.value.uuid == missing
        assert exc_info.value.context == {"uuid": missing}

    def test_add_duplicate_uuid(self, project):
        configuration = Configuration(projects=[project])
        with pytest.raises(InvalidConfigurationError):
            configuration.add_project(project.model_copy())

    def test_duplicate_uuids_rejected_on_validation(self, project):
        from pydantic import ValidationError

        with pytest.raises(ValidationError, match="duplicate project uuid"):
            Configuration(projects=[project, project.model_copy()])

    def test_remove_project(self, project):
        other = Project.create("other")
        configuration = Configuration(projects=[project, other])

        removed = configuration.remove_project(project.uuid)

        assert removed.uuid == project.uuid
        assert [p.uuid for p in configuration.projects] == [other.uuid]

    def test_replace_project(self, project):
        configuration = Configuration(projects=[project])
        updated = project.model_copy(update={"name": "svc-renamed"})

        configuration.replace_project(updated)

        assert configuration.projects[0].name == "svc-renamed"

    def test_document_uses_persisted_keys(self, project):
        document = Configuration(projects=[project]).to_document()
        record = document["projects"][0]

        assert set(record) == {
            "uuid",
            "name",
            "secret",
            "maxArgs",
            "hooks",
            "preHook",
            "postHook",
            "errorHook",
            "workDir",
            "tokens",
        }
        assert set(record["tokens"][0]) == {"whitelistedNetwork", "token"}

    def test_parse_persisted_keys(self):
        configuration = Configuration.model_validate(
            {
                "projects": [
                    {
                        "uuid": "b1f5c1c2-0000-4000-8000-000000000001",
                        "name": "svc-a",
                        "secret": "s",
                        "maxArgs": 3,
                        "preHook": "/pre.sh",
                        "tokens": [{"whitelistedNetwork": "10.0.0.0/8", "token": "t"}],
                    }
                ]
            }
        )
        project = configuration.projects[0]
        assert project.max_args == 3  # noqa: PLR2004
        assert project.pre_hook == "/pre.sh"
        assert project.hooks == []
        assert project.tokens == [TokenDetail(whitelisted_network="10.0.0.0/8", token="t")]
