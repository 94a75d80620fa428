from aws_cdk import (
    aws_ec2 as ec2,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
    Duration,
    RemovalPolicy,
)
from constructs import Construct

from fractal_infra.config import CREDENTIALS_EXCLUDE_CHARACTERS, DEFAULT_DB_USERNAME


class RdsConstruct(Construct):

    @property
    def rds_instance(self) -> rds.DatabaseInstance:
        return self._rds_instance

    @property
    def rds_secret(self) -> secretsmanager.ISecret:
        return self._rds_secret

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 rds_security_group: ec2.ISecurityGroup,
                 database_name: str,
                 vpc_subnets: ec2.SubnetSelection,
                 instance_type: ec2.InstanceType,
                 multi_az: bool,
                 allocated_storage_gib: int,
                 max_allocated_storage_gib: int,
                 deletion_protection: bool,
                 backup_retention_days: int,
                 credentials_secret_name: str,
                 **kwargs) -> None:
        super().__init__(scope, id, **kwargs)

        credentials = rds.Credentials.from_generated_secret(
            DEFAULT_DB_USERNAME,
            secret_name=credentials_secret_name,
            exclude_characters=CREDENTIALS_EXCLUDE_CHARACTERS
        )

        self._rds_instance = rds.DatabaseInstance(
            self,
            "FractalDb",
            engine=rds.DatabaseInstanceEngine.postgres(version=rds.PostgresEngineVersion.of("15", "15")),
            instance_type=instance_type,
            vpc=vpc,
            vpc_subnets=vpc_subnets,
            security_groups=[rds_security_group],
            credentials=credentials,
            database_name=database_name,
            multi_az=multi_az,
            allocated_storage=allocated_storage_gib,
            max_allocated_storage=max_allocated_storage_gib,
            storage_type=rds.StorageType.GP3,
            publicly_accessible=False,
            deletion_protection=deletion_protection,
            # NOTE: switch to SNAPSHOT/RETAIN before holding production data
            removal_policy=RemovalPolicy.DESTROY,
            cloudwatch_logs_exports=["postgresql"],
            backup_retention=Duration.days(backup_retention_days)
        )

        self._rds_secret = self._rds_instance.secret
