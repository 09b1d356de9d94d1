import pytest

from deploy_agent.models import Project
from deploy_agent.store import ConfigurationStore


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "deploy-agent.yaml"


@pytest.fixture
def store(config_path):
    return ConfigurationStore(config_path)


@pytest.fixture
def project():
    return Project.create(
        "svc-a",
        ["10.0.0.0/8", "192.168.0.0/16"],
        max_args=2,
        hooks=["/opt/hooks/deploy.sh"],
        pre_hook="/opt/hooks/pre.sh",
        work_dir="/srv/svc-a",
    )
