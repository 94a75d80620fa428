import aws_cdk as cdk
import pytest

from fractal_infra.stacks.database_stack import DatabaseStack
from fractal_infra.stacks.network_stack import NetworkStack
from fractal_infra.topology import build_topology


@pytest.fixture
def app():
    return cdk.App()


@pytest.fixture
def topology(app):
    return build_topology(app)


@pytest.fixture
def network(app):
    return NetworkStack(app, "TestNetwork")


@pytest.fixture
def database(app, network):
    return DatabaseStack(app, "TestDatabase", vpc=network.vpc, rds_security_group=network.rds_sg)


@pytest.fixture
def container_environment():
    """Map of a container's plain environment variables, keyed by name."""

    def _environment(template, container_name):
        for task_definition in template.find_resources("AWS::ECS::TaskDefinition").values():
            for container in task_definition["Properties"]["ContainerDefinitions"]:
                if container["Name"] == container_name:
                    return {item["Name"]: item["Value"] for item in container.get("Environment", [])}
        raise KeyError(container_name)

    return _environment
