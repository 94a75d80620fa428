import logging
from typing import Optional

from aws_cdk import (
    aws_ec2 as ec2,
    aws_rds as rds,
    aws_secretsmanager as secretsmanager,
    CfnOutput,
    Stack,
)
from constructs import Construct

from fractal_infra import config
from fractal_infra.constructs.rds_construct import RdsConstruct

logger = logging.getLogger(__name__)


class DatabaseStack(Stack):
    """PostgreSQL for the Fractal Engine, credentials kept in Secrets Manager."""

    def __init__(self,
                 scope: Construct,
                 id: str,
                 *,
                 vpc: ec2.IVpc,
                 rds_security_group: ec2.ISecurityGroup,
                 database_name: str = config.DEFAULT_DATABASE_NAME,
                 db_subnet_selection: Optional[ec2.SubnetSelection] = None,
                 instance_type: Optional[ec2.InstanceType] = None,
                 multi_az: bool = False,
                 allocated_storage_gib: int = 20,
                 max_allocated_storage_gib: int = 100,
                 deletion_protection: bool = False,
                 backup_retention_days: int = 3,
                 credentials_secret_name: str = config.DEFAULT_CREDENTIALS_SECRET_NAME,
                 **kwargs):
        super().__init__(scope, id, **kwargs)

        if max_allocated_storage_gib < allocated_storage_gib:
            raise config.ConfigurationError(
                f"max_allocated_storage_gib ({max_allocated_storage_gib}) is below "
                f"allocated_storage_gib ({allocated_storage_gib})"
            )

        self.database_name = database_name
        logger.info("%s: database %s, multi_az=%s, %d-%d GiB", id, database_name,
                    multi_az, allocated_storage_gib, max_allocated_storage_gib)

        self.rds_construct = RdsConstruct(
            self,
            "RDSInstance",
            vpc=vpc,
            rds_security_group=rds_security_group,
            database_name=database_name,
            vpc_subnets=db_subnet_selection or ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_ISOLATED),
            instance_type=instance_type or ec2.InstanceType.of(ec2.InstanceClass.T3, ec2.InstanceSize.MICRO),
            multi_az=multi_az,
            allocated_storage_gib=allocated_storage_gib,
            max_allocated_storage_gib=max_allocated_storage_gib,
            deletion_protection=deletion_protection,
            backup_retention_days=backup_retention_days,
            credentials_secret_name=credentials_secret_name
        )

        self.rds_instance: rds.DatabaseInstance = self.rds_construct.rds_instance
        self.rds_secret: secretsmanager.ISecret = self.rds_construct.rds_secret

        # String tokens, safe to place in container environment values
        self.db_host: str = self.rds_instance.db_instance_endpoint_address
        self.db_port: str = self.rds_instance.db_instance_endpoint_port

        CfnOutput(self, "RdsEndpoint", value=self.rds_instance.instance_endpoint.socket_address)
        CfnOutput(self, "RdsSecretName", value=self.rds_secret.secret_name)
