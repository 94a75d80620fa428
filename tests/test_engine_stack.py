import aws_cdk as cdk
import pytest
from aws_cdk import aws_ec2 as ec2, aws_ecs as ecs
from aws_cdk.assertions import Match, Template

from fractal_infra.config import ConfigurationError
from fractal_infra.stacks.engine_stack import DogecoinConnection, EngineStack, engine_environment


def bare_engine(app, network, database, **kwargs):
    return EngineStack(
        app, "BareEngine",
        vpc=network.vpc,
        alb_security_group=network.alb_sg,
        engine_security_group=network.engine_sg,
        db_host=database.db_host,
        db_secret=database.rds_secret,
        **kwargs
    )


def test_container_environment_from_topology(topology, container_environment):
    template = Template.from_stack(topology.engine)
    environment = container_environment(template, "Engine")

    assert environment["RPC_SERVER_HOST"] == "0.0.0.0"
    assert environment["RPC_SERVER_PORT"] == "8891"
    assert environment["CORS_ALLOWED_ORIGINS"] == "*"
    assert environment["DATABASE_NAME"] == "fractal"
    assert environment["DOGE_HOST"] == "dogecoin.fractal.local"
    assert environment["DOGE_PORT"] == "22555"
    assert environment["DOGECOIN_ZMQ_PORT"] == "28000"
    # resolved from the database stack at deploy time
    assert "Fn::ImportValue" in environment["DATABASE_HOST"]
    assert "Fn::ImportValue" in environment["DATABASE_PORT"]


def test_database_credentials_come_from_secret(topology):
    template = Template.from_stack(topology.engine)

    task_definition = next(iter(template.find_resources("AWS::ECS::TaskDefinition").values()))
    container = task_definition["Properties"]["ContainerDefinitions"][0]
    secrets = {secret["Name"]: secret["ValueFrom"] for secret in container["Secrets"]}
    assert sorted(secrets) == ["DATABASE_PASSWORD", "DATABASE_USERNAME"]

    # ARN of the database secret followed by the JSON key to extract
    for name, json_key in (("DATABASE_USERNAME", "username"), ("DATABASE_PASSWORD", "password")):
        parts = secrets[name]["Fn::Join"][1]
        assert "Fn::ImportValue" in parts[0]
        assert parts[-1] == f":{json_key}::"


def test_defaults_without_dogecoin(app, network, database, container_environment):
    template = Template.from_stack(bare_engine(app, network, database))
    environment = container_environment(template, "Engine")

    assert environment["DATABASE_PORT"] == "5432"
    assert environment["DATABASE_NAME"] == "fractal"
    assert not {"DOGE_HOST", "DOGE_PORT", "DOGECOIN_ZMQ_PORT"} & set(environment)


def test_container_ports_and_image(topology):
    template = Template.from_stack(topology.engine)

    template.has_resource_properties("AWS::ECS::TaskDefinition", {
        "Cpu": "512",
        "Memory": "1024",
        "ContainerDefinitions": [Match.object_like({
            "Image": "ghcr.io/dogecoinfoundation/fractal-engine:v0.0.1",
            "PortMappings": [
                {"ContainerPort": 8891, "Protocol": "tcp"},
                {"ContainerPort": 8086, "Protocol": "tcp"},
            ],
        })],
    })


def test_load_balancer(topology):
    template = Template.from_stack(topology.engine)

    template.has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
        "Scheme": "internet-facing",
        "Type": "application",
    })
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
        "Port": 80,
        "Protocol": "HTTP",
    })
    template.has_resource_properties("AWS::ElasticLoadBalancingV2::TargetGroup", {
        "Port": 8891,
        "Protocol": "HTTP",
        "TargetType": "ip",
        "HealthCheckPath": "/health",
        "HealthCheckIntervalSeconds": 30,
        "Matcher": {"HttpCode": "200"},
        "TargetGroupAttributes": Match.array_with([
            {"Key": "deregistration_delay.timeout_seconds", "Value": "10"},
        ]),
    })
    template.has_output("AlbDnsName", {})


def test_service_registered_with_target_group(topology):
    template = Template.from_stack(topology.engine)

    template.has_resource_properties("AWS::ECS::Service", {
        "EnableExecuteCommand": True,
        "LoadBalancers": [Match.object_like({"ContainerName": "Engine", "ContainerPort": 8891})],
    })


def test_task_role_reads_database_secret(topology):
    engine = topology.engine
    template = Template.from_stack(engine)
    task_role = engine.get_logical_id(engine.roles.task_role.node.default_child)

    readers = set()
    for policy in template.find_resources("AWS::IAM::Policy").values():
        props = policy["Properties"]
        for statement in props["PolicyDocument"]["Statement"]:
            actions = statement["Action"] if isinstance(statement["Action"], list) else [statement["Action"]]
            if "secretsmanager:GetSecretValue" in actions:
                readers.update(role["Ref"] for role in props["Roles"])

    assert task_role in readers
    template.has_output("EcsExecOperatorPolicyArn", {})


def test_dogecoin_connection_port_defaults():
    environment = engine_environment(
        db_host="db.internal",
        db_port=None,
        database_name="fractal",
        dogecoin=DogecoinConnection(host="dogecoin.fractal.local")
    )

    assert environment["DATABASE_PORT"] == "5432"
    assert environment["DOGE_PORT"] == "22555"
    assert environment["DOGECOIN_ZMQ_PORT"] == "28000"


def test_dogecoin_connection_without_host_is_omitted():
    environment = engine_environment(db_host="db.internal", db_port=5432, database_name="fractal",
                                     dogecoin=DogecoinConnection(host=""))

    assert environment["DATABASE_PORT"] == "5432"
    assert not {"DOGE_HOST", "DOGE_PORT", "DOGECOIN_ZMQ_PORT"} & set(environment)


def test_dogecoin_ports_may_be_tokens():
    rpc_port = cdk.Token.as_number(cdk.Fn.import_value("DogecoinRpcPort"))
    zmq_port = cdk.Token.as_number(cdk.Fn.import_value("DogecoinZmqPort"))

    environment = engine_environment(db_host="db.internal", db_port=None, database_name="fractal",
                                     dogecoin=DogecoinConnection(host="d", rpc_port=rpc_port, zmq_port=zmq_port))

    assert cdk.Token.is_unresolved(environment["DOGE_PORT"])
    assert cdk.Token.is_unresolved(environment["DOGECOIN_ZMQ_PORT"])


def test_invalid_database_port_is_rejected(app, network, database):
    with pytest.raises(ConfigurationError):
        bare_engine(app, network, database, db_port=0)


def test_options_override_defaults(app, network, database):
    stack = bare_engine(
        app, network, database,
        desired_count=3,
        cpu=1024,
        memory_mib=2048,
        engine_container_image=ecs.ContainerImage.from_registry("example/engine:test"),
        app_subnet_selection=ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
        alb_subnet_selection=ec2.SubnetSelection(subnet_group_name="public")
    )
    template = Template.from_stack(stack)

    template.has_resource_properties("AWS::ECS::TaskDefinition", {
        "Cpu": "1024",
        "Memory": "2048",
        "ContainerDefinitions": [Match.object_like({"Image": "example/engine:test"})],
    })

    service = next(iter(template.find_resources("AWS::ECS::Service").values()))["Properties"]
    assert service["DesiredCount"] == 3
    service_subnets = service["NetworkConfiguration"]["AwsvpcConfiguration"]["Subnets"]
    assert service_subnets
    assert all("dataSubnet" in subnet["Fn::ImportValue"] for subnet in service_subnets)

    alb = next(iter(template.find_resources("AWS::ElasticLoadBalancingV2::LoadBalancer").values()))["Properties"]
    assert alb["Subnets"]
    assert all("publicSubnet" in subnet["Fn::ImportValue"] for subnet in alb["Subnets"])
