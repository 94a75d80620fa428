import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_logs as logs,
    aws_secretsmanager as secretsmanager,
    CfnOutput,
    RemovalPolicy,
    Stack,
)
from constructs import Construct

from fractal_infra import config
from fractal_infra.constructs.alb_construct import AlbConstruct
from fractal_infra.constructs.task_roles_construct import TaskRolesConstruct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DogecoinConnection:
    host: str
    rpc_port: int = config.DOGECOIN_RPC_PORT
    zmq_port: int = config.DOGECOIN_ZMQ_PORT


def engine_environment(*,
                       db_host: str,
                       db_port: Union[int, float, str, None],
                       database_name: str,
                       dogecoin: Optional[DogecoinConnection]) -> Dict[str, str]:
    """Plain (non-secret) environment handed to the Engine container."""
    environment = {
        "RPC_SERVER_HOST": "0.0.0.0",
        "RPC_SERVER_PORT": str(config.ENGINE_RPC_PORT),
        "CORS_ALLOWED_ORIGINS": "*",
        "DATABASE_HOST": db_host,
        "DATABASE_PORT": config.port_string(db_port if db_port is not None else config.POSTGRES_PORT),
        "DATABASE_NAME": database_name,
    }

    if dogecoin is not None and dogecoin.host:
        environment.update({
            "DOGE_HOST": dogecoin.host,
            "DOGE_PORT": config.port_string(config.validate_port("dogecoin.rpc_port", dogecoin.rpc_port)),
            "DOGECOIN_ZMQ_PORT": config.port_string(config.validate_port("dogecoin.zmq_port", dogecoin.zmq_port)),
        })

    return environment


class EngineStack(Stack):
    """Fractal Engine on ECS Fargate behind a public ALB.

    Reads PostgreSQL host/port and the credentials secret from the Database
    stack and, when given, the Dogecoin node's discovery name and ports.
    """

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 alb_security_group: ec2.ISecurityGroup,
                 engine_security_group: ec2.ISecurityGroup,
                 db_host: str,
                 db_secret: secretsmanager.ISecret,
                 db_port: Union[int, float, str, None] = None,
                 database_name: str = config.DEFAULT_DATABASE_NAME,
                 dogecoin: Optional[DogecoinConnection] = None,
                 desired_count: int = 1,
                 cpu: int = config.DEFAULT_CPU,
                 memory_mib: int = config.DEFAULT_MEMORY_MIB,
                 engine_container_image: Optional[ecs.ContainerImage] = None,
                 app_subnet_selection: Optional[ec2.SubnetSelection] = None,
                 alb_subnet_selection: Optional[ec2.SubnetSelection] = None,
                 **kwargs):
        super().__init__(scope, id, **kwargs)

        if db_port is not None and not isinstance(db_port, str):
            config.validate_port("db_port", db_port)

        environment = engine_environment(
            db_host=db_host,
            db_port=db_port,
            database_name=database_name,
            dogecoin=dogecoin
        )
        logger.info("%s: %d task(s), database %s, dogecoin %s", id, desired_count,
                    database_name, dogecoin.host if dogecoin else "not configured")

        self.cluster = ecs.Cluster(
            self, "FractalCluster",
            vpc=vpc,
            container_insights_v2=ecs.ContainerInsights.ENABLED
        )

        self.roles = TaskRolesConstruct(
            self, "Roles",
            execution_role_id="TaskExecutionRole",
            task_role_id="TaskRole",
            task_role_description="Task role for Fractal Engine (access to Secrets Manager, etc.)"
        )

        db_secret.grant_read(self.roles.task_role)

        task_definition = ecs.FargateTaskDefinition(
            self, "FractalTaskDef",
            memory_limit_mib=memory_mib,
            cpu=cpu,
            execution_role=self.roles.execution_role,
            task_role=self.roles.task_role
        )

        log_group = logs.LogGroup(
            self, "EngineLogs",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY
        )

        container = task_definition.add_container(
            "Engine",
            image=engine_container_image or ecs.ContainerImage.from_registry(config.DEFAULT_ENGINE_IMAGE),
            logging=ecs.LogDrivers.aws_logs(stream_prefix="engine", log_group=log_group),
            environment=environment,
            secrets={
                "DATABASE_USERNAME": ecs.Secret.from_secrets_manager(db_secret, "username"),
                "DATABASE_PASSWORD": ecs.Secret.from_secrets_manager(db_secret, "password"),
            },
            essential=True
        )

        # First mapping is the one the target group routes to
        container.add_port_mappings(
            ecs.PortMapping(container_port=config.ENGINE_RPC_PORT, protocol=ecs.Protocol.TCP),
            ecs.PortMapping(container_port=config.ENGINE_SECONDARY_PORT, protocol=ecs.Protocol.TCP),
        )

        self.service = ecs.FargateService(
            self, "FractalService",
            cluster=self.cluster,
            task_definition=task_definition,
            desired_count=desired_count,
            enable_execute_command=True,
            security_groups=[engine_security_group],
            vpc_subnets=app_subnet_selection or ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
            assign_public_ip=False,
            min_healthy_percent=100,
            max_healthy_percent=200
        )

        self.alb_construct = AlbConstruct(
            self,
            "ApplicationLoadBalancerResources",
            vpc=vpc,
            alb_security_group=alb_security_group,
            vpc_subnets=alb_subnet_selection or ec2.SubnetSelection(subnet_type=ec2.SubnetType.PUBLIC),
            listener_port=config.HTTP_PORT,
            target_port=config.ENGINE_RPC_PORT
        )

        self.load_balancer = self.alb_construct.load_balancer
        self.service.attach_to_application_target_group(self.alb_construct.application_target_group)

        CfnOutput(self, "AlbDnsName", value=self.load_balancer.load_balancer_dns_name)
        CfnOutput(self, "EcsExecOperatorPolicyArn", value=self.roles.operator_policy.managed_policy_arn)
