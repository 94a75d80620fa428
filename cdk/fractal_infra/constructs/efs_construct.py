from aws_cdk import (
    aws_ec2 as ec2,
    aws_efs as efs,
    aws_iam as iam,
    RemovalPolicy,
)
from constructs import Construct

EFS_CLIENT_ACTIONS = [
    "elasticfilesystem:ClientMount",
    "elasticfilesystem:ClientWrite",
    "elasticfilesystem:DescribeMountTargets",
    "elasticfilesystem:DescribeAccessPoints",
]


class EfsConstruct(Construct):
    """Persistent NFS storage for a single containerised service."""

    @property
    def file_system(self) -> efs.FileSystem:
        return self._file_system

    @property
    def access_point(self) -> efs.AccessPoint:
        return self._access_point

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 vpc_subnets: ec2.SubnetSelection,
                 client_security_group: ec2.ISecurityGroup,
                 path: str,
                 **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        # Chain data outlives the stack
        self._file_system = efs.FileSystem(
            self,
            "DogecoinEfs",
            vpc=vpc,
            vpc_subnets=vpc_subnets,
            lifecycle_policy=efs.LifecyclePolicy.AFTER_14_DAYS,
            performance_mode=efs.PerformanceMode.GENERAL_PURPOSE,
            throughput_mode=efs.ThroughputMode.BURSTING,
            removal_policy=RemovalPolicy.RETAIN
        )

        self._file_system.connections.allow_default_port_from(
            client_security_group,
            "Allow NFS from Dogecoin tasks"
        )

        self._access_point = efs.AccessPoint(
            self,
            "DogecoinEfsAp",
            file_system=self._file_system,
            path=path,
            create_acl=efs.Acl(owner_uid="0", owner_gid="0", permissions="0777")
        )

    def grant_mount(self, role: iam.IRole) -> None:
        role.add_to_principal_policy(
            iam.PolicyStatement(
                actions=EFS_CLIENT_ACTIONS,
                resources=[self._file_system.file_system_arn, self._access_point.access_point_arn]
            )
        )
