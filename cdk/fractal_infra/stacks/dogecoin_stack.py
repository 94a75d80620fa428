import logging
from typing import Mapping, Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_logs as logs,
    aws_servicediscovery as servicediscovery,
    CfnOutput,
    Duration,
    RemovalPolicy,
    Stack,
)
from constructs import Construct

from fractal_infra import config
from fractal_infra.constructs.efs_construct import EFS_CLIENT_ACTIONS, EfsConstruct
from fractal_infra.constructs.task_roles_construct import TaskRolesConstruct

logger = logging.getLogger(__name__)

DATA_VOLUME_NAME = "dogecoin-data"


class DogecoinStack(Stack):
    """Dogecoin node on ECS Fargate.

    - Blockchain data persists on EFS mounted at /data
    - Registered in Cloud Map (private DNS) so the Engine can find it
    - Container logs go to CloudWatch Logs
    """

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 doge_security_group: ec2.ISecurityGroup,
                 namespace: servicediscovery.INamespace,
                 desired_count: int = 1,
                 cpu: int = config.DEFAULT_CPU,
                 memory_mib: int = config.DEFAULT_MEMORY_MIB,
                 container_image: Optional[ecs.ContainerImage] = None,
                 namespace_name: Optional[str] = None,
                 service_name: str = config.DEFAULT_DOGECOIN_SERVICE_NAME,
                 rpc_port: int = config.DOGECOIN_RPC_PORT,
                 p2p_port: int = config.DOGECOIN_P2P_PORT,
                 zmq_port: int = config.DOGECOIN_ZMQ_PORT,
                 environment: Optional[Mapping[str, str]] = None,
                 **kwargs):
        super().__init__(scope, id, **kwargs)

        self.rpc_port = config.validate_port("rpc_port", rpc_port)
        p2p_port = config.validate_port("p2p_port", p2p_port)
        self.zmq_port = config.validate_port("zmq_port", zmq_port)

        namespace_name = namespace_name or namespace.namespace_name
        # Full service discovery DNS name: service.namespace
        self.service_discovery_name = f"{service_name}.{namespace_name}"

        logger.info("%s: %d task(s), cpu=%d memory=%dMiB, discoverable at %s",
                    id, desired_count, cpu, memory_mib, self.service_discovery_name)

        self.cluster = ecs.Cluster(
            self, "DogecoinCluster",
            vpc=vpc,
            container_insights_v2=ecs.ContainerInsights.ENABLED
        )

        subnets = ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)

        self.storage = EfsConstruct(
            self, "Storage",
            vpc=vpc,
            vpc_subnets=subnets,
            client_security_group=doge_security_group,
            path="/dogecoin"
        )

        self.roles = TaskRolesConstruct(
            self, "Roles",
            execution_role_id="DogecoinTaskExecutionRole",
            task_role_id="DogecoinTaskRole",
            task_role_description="Task role for Dogecoin node",
            extra_task_actions=EFS_CLIENT_ACTIONS
        )

        task_definition = ecs.FargateTaskDefinition(
            self, "DogecoinTaskDef",
            cpu=cpu,
            memory_limit_mib=memory_mib,
            execution_role=self.roles.execution_role,
            task_role=self.roles.task_role
        )

        self.storage.grant_mount(self.roles.execution_role)

        task_definition.add_volume(
            name=DATA_VOLUME_NAME,
            efs_volume_configuration=ecs.EfsVolumeConfiguration(
                file_system_id=self.storage.file_system.file_system_id,
                transit_encryption="ENABLED",
                authorization_config=ecs.AuthorizationConfig(
                    access_point_id=self.storage.access_point.access_point_id,
                    iam="ENABLED"
                )
            )
        )

        log_group = logs.LogGroup(
            self, "DogecoinLogs",
            retention=logs.RetentionDays.ONE_WEEK,
            removal_policy=RemovalPolicy.DESTROY
        )

        container = task_definition.add_container(
            "Dogecoin",
            image=container_image or ecs.ContainerImage.from_registry(config.DEFAULT_DOGECOIN_IMAGE),
            cpu=cpu,
            memory_limit_mib=memory_mib,
            logging=ecs.LogDrivers.aws_logs(stream_prefix="dogecoin", log_group=log_group),
            # DATADIR always points dogecoind at the EFS mount
            environment={**(environment or {}), "DATADIR": config.DOGECOIN_DATA_DIR},
            essential=True
        )

        container.add_mount_points(
            ecs.MountPoint(
                container_path=config.DOGECOIN_DATA_DIR,
                source_volume=DATA_VOLUME_NAME,
                read_only=False
            )
        )

        container.add_port_mappings(
            ecs.PortMapping(container_port=self.rpc_port, protocol=ecs.Protocol.TCP),
            ecs.PortMapping(container_port=p2p_port, protocol=ecs.Protocol.TCP),
            ecs.PortMapping(container_port=self.zmq_port, protocol=ecs.Protocol.TCP),
        )

        self.service = ecs.FargateService(
            self, "DogecoinService",
            cluster=self.cluster,
            task_definition=task_definition,
            desired_count=desired_count,
            enable_execute_command=True,
            security_groups=[doge_security_group],
            vpc_subnets=subnets,
            assign_public_ip=False,
            min_healthy_percent=100,
            max_healthy_percent=200,
            cloud_map_options=ecs.CloudMapOptions(
                name=service_name,
                cloud_map_namespace=namespace,
                dns_record_type=servicediscovery.DnsRecordType.A,
                dns_ttl=Duration.seconds(30)
            )
        )

        CfnOutput(self, "DogecoinServiceDiscoveryName", value=self.service_discovery_name)
        CfnOutput(self, "DogecoinRpcPort", value=config.port_string(self.rpc_port))
        CfnOutput(self, "DogecoinZmqPort", value=config.port_string(self.zmq_port))
